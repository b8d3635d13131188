"""LearningLedger: the public surface over NodeStore, RootLedger and friends.

Every administrative call is all-or-nothing. It loads private copies of the
entity states it touches, mutates the copies, persists them in one backend
transaction and only then publishes the buffered records. Any failure before
the save leaves stored state and sinks untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, datetime
from typing import TypeVar

from memoria_core.auth import SingleAdminAuthorizer
from memoria_core.config.models import MemoriaConfig
from memoria_core.errors import InvalidInputError
from memoria_core.events import LedgerEvent, LoggingEventSink
from memoria_core.interfaces.auth import Authorizer
from memoria_core.interfaces.events import EventSink
from memoria_core.interfaces.storage import LedgerBackend
from memoria_core.merkle.integrity import IntegrityChecker
from memoria_core.merkle.models import (
    EntityState,
    IntegrityReport,
    LearningMetrics,
    NodeIntegrity,
    RootUpdate,
    TreeNode,
)
from memoria_core.merkle.node_store import NodeStore
from memoria_core.merkle.path import MAX_PATH_HOPS, PathFinder
from memoria_core.merkle.proof import ProofVerifier
from memoria_core.merkle.root_ledger import RootLedger
from memoria_core.storage import MemoryBackend, create_backend

logger = logging.getLogger(__name__)

T = TypeVar("T")

EntityId = str | int
NodeInput = TreeNode | dict


def _utc_now() -> int:
    return int(datetime.now(UTC).timestamp())


def _entity_key(entity: EntityId) -> str:
    key = str(entity).strip()
    if not key:
        raise InvalidInputError("entity identifier cannot be empty")
    return key


class LearningLedger:
    """Per-entity learning-history trees with a verifiable root."""

    def __init__(
        self,
        backend: LedgerBackend | None = None,
        authorizer: Authorizer | None = None,
        *,
        clock: Callable[[], int] | None = None,
        sinks: Iterable[EventSink] | None = None,
        max_path_hops: int = MAX_PATH_HOPS,
    ) -> None:
        self._backend = backend if backend is not None else MemoryBackend()
        self._auth = authorizer if authorizer is not None else SingleAdminAuthorizer("admin")
        self._clock = clock or _utc_now
        self._sinks: list[EventSink] = list(sinks) if sinks is not None else [LoggingEventSink()]
        self._max_path_hops = max_path_hops

    @classmethod
    def from_config(
        cls,
        config: MemoriaConfig,
        *,
        clock: Callable[[], int] | None = None,
        sinks: Iterable[EventSink] | None = None,
    ) -> LearningLedger:
        return cls(
            backend=create_backend(config.storage),
            authorizer=SingleAdminAuthorizer(config.ledger.admin),
            clock=clock,
            sinks=sinks,
            max_path_hops=config.ledger.max_path_hops,
        )

    @property
    def admin(self) -> str:
        return self._auth.admin

    # ------------------------------------------------------------------
    # Transaction plumbing
    # ------------------------------------------------------------------

    def _write(
        self,
        caller: str,
        entities: Sequence[str],
        op: Callable[[dict[str, EntityState], list[LedgerEvent], int], T],
    ) -> T:
        self._auth.require_admin(caller)
        states: dict[str, EntityState] = {}
        for entity in entities:
            if entity not in states:
                states[entity] = self._backend.load(entity)
        events: list[LedgerEvent] = []
        result = op(states, events, self._clock())
        self._backend.save_many(list(states.values()))
        self._publish(events)
        return result

    def _publish(self, events: list[LedgerEvent]) -> None:
        for event in events:
            for sink in self._sinks:
                try:
                    sink.emit(event)
                except Exception:
                    # State is already committed.
                    logger.exception("Event sink %r failed on %s", sink, event.kind)

    def _read(self, entity: EntityId) -> EntityState:
        return self._backend.load(_entity_key(entity))

    # ------------------------------------------------------------------
    # Administrative operations
    # ------------------------------------------------------------------

    def replace_tree(self, caller: str, entity: EntityId, nodes: Iterable[NodeInput]) -> int:
        """Swap the entity's whole node set. Returns the previous node count."""
        key = _entity_key(entity)
        batch = list(nodes)

        def op(states: dict[str, EntityState], events: list[LedgerEvent], now: int) -> int:
            return NodeStore(states[key], events).replace(batch, now)

        return self._write(caller, [key], op)

    def commit_root(
        self,
        caller: str,
        entity: EntityId,
        new_root: str | bytes,
        proof: bytes | str = b"",
        reason: str = "",
    ) -> RootUpdate:
        """Record a new root for the entity."""
        key = _entity_key(entity)

        def op(states: dict[str, EntityState], events: list[LedgerEvent], now: int) -> RootUpdate:
            return RootLedger(states[key], events).commit(new_root, proof, reason, now)

        return self._write(caller, [key], op)

    def commit_root_with_nodes(
        self,
        caller: str,
        entity: EntityId,
        new_root: str | bytes,
        nodes: Iterable[NodeInput],
        proof: bytes | str = b"",
        reason: str = "",
    ) -> RootUpdate:
        """Replace the node set and commit its root as one operation."""
        key = _entity_key(entity)
        batch = list(nodes)

        def op(states: dict[str, EntityState], events: list[LedgerEvent], now: int) -> RootUpdate:
            state = states[key]
            NodeStore(state, events).replace(batch, now, new_root=new_root)
            return RootLedger(state, events).commit(new_root, proof, reason, now)

        return self._write(caller, [key], op)

    def batch_commit_roots(
        self,
        caller: str,
        entities: Sequence[EntityId],
        roots: Sequence[str | bytes],
        proofs: Sequence[bytes | str] | None = None,
        reasons: Sequence[str] | None = None,
    ) -> list[RootUpdate]:
        """Commit one root per entity. Either every commit lands or none does."""
        proofs = list(proofs) if proofs is not None else [b""] * len(entities)
        reasons = list(reasons) if reasons is not None else [""] * len(entities)
        if not (len(entities) == len(roots) == len(proofs) == len(reasons)):
            raise InvalidInputError(
                "array lengths must match", invariant="batch length mismatch"
            )
        keys = [_entity_key(e) for e in entities]

        def op(
            states: dict[str, EntityState], events: list[LedgerEvent], now: int
        ) -> list[RootUpdate]:
            return [
                RootLedger(states[k], events).commit(root, proof, reason, now)
                for k, root, proof, reason in zip(keys, roots, proofs, reasons)
            ]

        return self._write(caller, keys, op)

    def emergency_reset_root(self, caller: str, entity: EntityId, new_root: str | bytes) -> RootUpdate:
        """Force a root when node data is unavailable. Skips the duplicate guard."""
        key = _entity_key(entity)

        def op(states: dict[str, EntityState], events: list[LedgerEvent], now: int) -> RootUpdate:
            return RootLedger(states[key], events).emergency_reset(new_root, now)

        return self._write(caller, [key], op)

    def transfer_admin(self, caller: str, new_admin: str) -> None:
        self._auth.transfer_admin(caller, new_admin)

    # ------------------------------------------------------------------
    # Root and history queries
    # ------------------------------------------------------------------

    def get_root(self, entity: EntityId) -> str:
        return self._read(entity).ledger.root

    def get_metrics(self, entity: EntityId) -> LearningMetrics:
        return self._read(entity).ledger.metrics

    def get_update_history(self, entity: EntityId) -> list[RootUpdate]:
        return list(self._read(entity).ledger.updates)

    def get_latest_update(self, entity: EntityId) -> RootUpdate:
        return RootLedger(self._read(entity)).latest()

    def get_update_count(self, entity: EntityId) -> int:
        return self._read(entity).ledger.update_count

    def verify_root_in_history(self, entity: EntityId, root: str | bytes) -> bool:
        return RootLedger(self._read(entity)).in_history(root)

    def entities(self) -> list[str]:
        return self._backend.entities()

    # ------------------------------------------------------------------
    # Node queries
    # ------------------------------------------------------------------

    def get_node(self, entity: EntityId, node_hash: str | bytes) -> TreeNode:
        return NodeStore(self._read(entity)).get(node_hash)

    def get_all_nodes(self, entity: EntityId) -> list[TreeNode]:
        return NodeStore(self._read(entity)).all_nodes()

    def get_nodes_at_level(self, entity: EntityId, level: int) -> list[TreeNode]:
        return NodeStore(self._read(entity)).nodes_at_level(level)

    def get_leaf_nodes(self, entity: EntityId) -> list[TreeNode]:
        return NodeStore(self._read(entity)).leaf_nodes()

    def node_count(self, entity: EntityId) -> int:
        return self._read(entity).tree.node_count

    def tree_depth(self, entity: EntityId) -> int:
        return NodeStore(self._read(entity)).depth()

    def verify_node_exists(self, entity: EntityId, node_hash: str | bytes) -> bool:
        try:
            return NodeStore(self._read(entity)).exists(node_hash)
        except InvalidInputError:
            return False

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify_proof(
        self, entity: EntityId, claim: str | bytes, proof: Sequence[str | bytes]
    ) -> bool:
        return ProofVerifier(self.get_root(entity)).verify(claim, proof)

    def verify_individual_node(self, entity: EntityId, node_hash: str | bytes) -> NodeIntegrity:
        state = self._read(entity)
        return IntegrityChecker(state.entity, NodeStore(state), state.ledger.root).verify_individual_node(
            node_hash
        )

    def check_integrity(self, entity: EntityId) -> IntegrityReport:
        state = self._read(entity)
        return IntegrityChecker(state.entity, NodeStore(state), state.ledger.root).scan()

    def path_to_root(
        self, entity: EntityId, leaf_hash: str | bytes, max_hops: int | None = None
    ) -> list[str]:
        state = self._read(entity)
        finder = PathFinder(state.entity, NodeStore(state), state.ledger.root)
        return finder.path_to_root(leaf_hash, self._max_path_hops if max_hops is None else max_hops)
