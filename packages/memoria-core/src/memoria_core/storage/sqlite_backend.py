"""LedgerBackend backed by a local SQLite database."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from memoria_core.errors import StorageError
from memoria_core.merkle.models import (
    EntityLedger,
    EntityState,
    EntityTree,
    LearningMetrics,
    RootUpdate,
    TreeNode,
)
from memoria_core.merkle.node_store import index_parents

logger = logging.getLogger(__name__)

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS entities (
    entity TEXT PRIMARY KEY,
    root TEXT NOT NULL,
    update_count INTEGER NOT NULL DEFAULT 0,
    last_updated INTEGER NOT NULL DEFAULT 0,
    total_interactions INTEGER NOT NULL DEFAULT 0,
    learning_events INTEGER NOT NULL DEFAULT 0,
    last_update_timestamp INTEGER NOT NULL DEFAULT 0,
    learning_velocity INTEGER NOT NULL DEFAULT 0,
    confidence_score INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS nodes (
    entity TEXT NOT NULL,
    seq INTEGER NOT NULL,
    hash TEXT NOT NULL,
    left_child TEXT NOT NULL,
    right_child TEXT NOT NULL,
    data BLOB NOT NULL,
    level INTEGER NOT NULL,
    position INTEGER NOT NULL,
    is_leaf INTEGER NOT NULL,
    inserted_at INTEGER NOT NULL,
    PRIMARY KEY (entity, hash)
);
CREATE INDEX IF NOT EXISTS idx_nodes_order ON nodes(entity, seq);
CREATE TABLE IF NOT EXISTS root_updates (
    entity TEXT NOT NULL,
    seq INTEGER NOT NULL,
    previous_root TEXT NOT NULL,
    new_root TEXT NOT NULL,
    proof BLOB NOT NULL,
    reason TEXT NOT NULL,
    timestamp INTEGER NOT NULL,
    PRIMARY KEY (entity, seq)
);
CREATE TRIGGER IF NOT EXISTS root_updates_no_update
BEFORE UPDATE ON root_updates
BEGIN
    SELECT RAISE(ABORT, 'root history is append-only');
END;
CREATE TRIGGER IF NOT EXISTS root_updates_no_delete
BEFORE DELETE ON root_updates
BEGIN
    SELECT RAISE(ABORT, 'root history is append-only');
END;
"""

_NODE_COLUMNS = (
    "hash, left_child, right_child, data, level, position, is_leaf, inserted_at"
)


class SQLiteBackend:
    """Ledger state in SQLite with WAL mode.

    Each ``save_many`` runs inside a single ``BEGIN IMMEDIATE`` transaction,
    so a batch touching several entities lands entirely or not at all.
    """

    def __init__(self, db_path: str = ".memoria/ledger.db") -> None:
        path = Path(db_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        self.db_path = str(path)
        # isolation_level=None => autocommit; transactions are opened by hand.
        self._conn = sqlite3.connect(self.db_path, isolation_level=None, timeout=5)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    def close(self) -> None:
        self._conn.close()

    # -- LedgerBackend protocol ------------------------------------------------

    def load(self, entity: str) -> EntityState:
        try:
            row = self._conn.execute(
                "SELECT root, update_count, last_updated, total_interactions, "
                "learning_events, last_update_timestamp, learning_velocity, confidence_score "
                "FROM entities WHERE entity = ?",
                (entity,),
            ).fetchone()
            if row is None:
                return EntityState(entity=entity)
            node_rows = self._conn.execute(
                f"SELECT {_NODE_COLUMNS} FROM nodes WHERE entity = ? ORDER BY seq ASC",
                (entity,),
            ).fetchall()
            update_rows = self._conn.execute(
                "SELECT previous_root, new_root, proof, reason, timestamp "
                "FROM root_updates WHERE entity = ? ORDER BY seq ASC",
                (entity,),
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageError("sqlite", "load", e) from e

        root, update_count, last_updated, *metric_values = row
        metrics = LearningMetrics(
            total_interactions=metric_values[0],
            learning_events=metric_values[1],
            last_update_timestamp=metric_values[2],
            learning_velocity=metric_values[3],
            confidence_score=metric_values[4],
        )
        tree = EntityTree()
        for r in node_rows:
            node = self._row_to_node(r)
            tree.order.append(node.hash)
            tree.nodes[node.hash] = node
        index_parents(tree)

        updates = [
            RootUpdate(
                previous_root=prev,
                new_root=new,
                proof=bytes(proof),
                reason=reason,
                timestamp=ts,
            )
            for prev, new, proof, reason, ts in update_rows
        ]
        return EntityState(
            entity=entity,
            tree=tree,
            ledger=EntityLedger(
                root=root,
                updates=updates,
                update_count=update_count,
                last_updated=last_updated,
                metrics=metrics,
            ),
        )

    def save_many(self, states: list[EntityState]) -> None:
        cursor = self._conn.cursor()
        try:
            cursor.execute("BEGIN IMMEDIATE")
            for state in states:
                self._write_state(cursor, state)
            cursor.execute("COMMIT")
        except sqlite3.Error as e:
            self._conn.rollback()
            raise StorageError("sqlite", "save", e) from e
        except Exception:
            self._conn.rollback()
            raise
        logger.debug("Saved %d entity state(s) to %s", len(states), self.db_path)

    def entities(self) -> list[str]:
        try:
            rows = self._conn.execute("SELECT entity FROM entities ORDER BY entity").fetchall()
        except sqlite3.Error as e:
            raise StorageError("sqlite", "list", e) from e
        return [r[0] for r in rows]

    # -- helpers ---------------------------------------------------------------

    def _row_to_node(self, row: tuple) -> TreeNode:
        hash_, left, right, data, level, position, is_leaf, inserted_at = row
        return TreeNode(
            hash=hash_,
            left_child=left,
            right_child=right,
            data=bytes(data),
            level=level,
            position=position,
            is_leaf=bool(is_leaf),
            inserted_at=inserted_at,
        )

    def _stored_history(self, cursor: sqlite3.Cursor, state: EntityState) -> int:
        """Count of stored updates for *state*.

        Raises StorageError unless the stored rows are a prefix of the
        in-memory history, i.e. when another writer appended after *state*
        was loaded.
        """
        (stored,) = cursor.execute(
            "SELECT COUNT(*) FROM root_updates WHERE entity = ?", (state.entity,)
        ).fetchone()
        updates = state.ledger.updates
        if stored == 0:
            return 0
        last = cursor.execute(
            "SELECT previous_root, new_root, timestamp FROM root_updates "
            "WHERE entity = ? AND seq = ?",
            (state.entity, stored - 1),
        ).fetchone()
        if stored > len(updates) or last != (
            updates[stored - 1].previous_root,
            updates[stored - 1].new_root,
            updates[stored - 1].timestamp,
        ):
            raise StorageError(
                "sqlite",
                "save",
                ValueError(
                    f"root history for {state.entity!r} changed since it was loaded "
                    f"({stored} stored, {len(updates)} in memory)"
                ),
            )
        return stored

    def _write_state(self, cursor: sqlite3.Cursor, state: EntityState) -> None:
        stored = self._stored_history(cursor, state)
        ledger = state.ledger
        m = ledger.metrics
        cursor.execute(
            "INSERT INTO entities (entity, root, update_count, last_updated, total_interactions, "
            "learning_events, last_update_timestamp, learning_velocity, confidence_score) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(entity) DO UPDATE SET root = excluded.root, "
            "update_count = excluded.update_count, last_updated = excluded.last_updated, "
            "total_interactions = excluded.total_interactions, "
            "learning_events = excluded.learning_events, "
            "last_update_timestamp = excluded.last_update_timestamp, "
            "learning_velocity = excluded.learning_velocity, "
            "confidence_score = excluded.confidence_score",
            (
                state.entity,
                ledger.root,
                ledger.update_count,
                ledger.last_updated,
                m.total_interactions,
                m.learning_events,
                m.last_update_timestamp,
                m.learning_velocity,
                m.confidence_score,
            ),
        )

        # Full replacement of the live node set.
        cursor.execute("DELETE FROM nodes WHERE entity = ?", (state.entity,))
        cursor.executemany(
            f"INSERT INTO nodes (entity, seq, {_NODE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            [
                (
                    state.entity,
                    seq,
                    n.hash,
                    n.left_child,
                    n.right_child,
                    n.data,
                    n.level,
                    n.position,
                    int(n.is_leaf),
                    n.inserted_at,
                )
                for seq, n in enumerate(state.tree.nodes[h] for h in state.tree.order)
            ],
        )

        # History only ever grows; append what the table doesn't have yet.
        cursor.executemany(
            "INSERT INTO root_updates (entity, seq, previous_root, new_root, proof, reason, timestamp) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            [
                (state.entity, seq, u.previous_root, u.new_root, u.proof, u.reason, u.timestamp)
                for seq, u in enumerate(ledger.updates)
                if seq >= stored
            ],
        )
