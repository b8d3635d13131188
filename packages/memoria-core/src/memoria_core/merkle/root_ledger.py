"""Current root and append-only root history per entity."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from memoria_core.errors import DuplicateCommitError, InvalidInputError, NotFoundError
from memoria_core.events import LedgerEvent, RootUpdated
from memoria_core.merkle.hashing import ZERO_HASH, normalize_hash
from memoria_core.merkle.metrics import MetricsEngine
from memoria_core.merkle.models import EntityState, RootUpdate

logger = logging.getLogger(__name__)

EMERGENCY_RESET_REASON = "emergency reset"


class RootLedger:
    """Root transitions for a single entity."""

    def __init__(self, state: EntityState, events: list[LedgerEvent] | None = None) -> None:
        self._state = state
        self._ledger = state.ledger
        self._events = events if events is not None else []
        self._metrics = MetricsEngine(state.entity, state.ledger)

    def _check_root(self, new_root: str | bytes) -> str:
        root = normalize_hash(new_root)
        if root == ZERO_HASH:
            raise InvalidInputError(
                "new root cannot be zero", entity=self._state.entity, invariant="root is zero"
            )
        return root

    def commit(
        self,
        new_root: str | bytes,
        proof: bytes = b"",
        reason: str = "",
        now: int = 0,
    ) -> RootUpdate:
        """Move the entity to *new_root* and record the transition."""
        root = self._check_root(new_root)
        if root == self._ledger.root:
            raise DuplicateCommitError(
                "new root must be different", entity=self._state.entity, invariant="root unchanged"
            )
        update, elapsed = self._apply(root, proof, reason, now)
        self._events.extend(self._metrics.milestones(elapsed, now))
        return update

    def emergency_reset(self, new_root: str | bytes, now: int = 0) -> RootUpdate:
        """Force the root without the duplicate guard or a node batch."""
        root = self._check_root(new_root)
        logger.warning("Emergency root reset for %s", self._state.entity)
        update, _ = self._apply(root, b"", EMERGENCY_RESET_REASON, now)
        return update

    def _apply(self, root: str, proof: bytes, reason: str, now: int) -> tuple[RootUpdate, int]:
        try:
            update = RootUpdate(
                previous_root=self._ledger.root,
                new_root=root,
                proof=proof,
                reason=reason,
                timestamp=now,
            )
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(p) for p in first["loc"]) or "update"
            raise InvalidInputError(
                f"invalid {field}: {first['msg']}",
                entity=self._state.entity,
                invariant="malformed proof" if field == "proof" else "malformed update",
            ) from e
        self._ledger.root = root
        self._ledger.updates.append(update)
        self._ledger.update_count += 1
        self._ledger.last_updated = now
        elapsed = self._metrics.record_update(now)
        self._events.append(
            RootUpdated(
                entity=self._state.entity,
                timestamp=now,
                previous_root=update.previous_root,
                new_root=root,
                reason=reason,
                update_count=self._ledger.update_count,
            )
        )
        logger.debug(
            "Root for %s: %s -> %s (update #%d)",
            self._state.entity,
            update.previous_root,
            root,
            self._ledger.update_count,
        )
        return update, elapsed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def root(self) -> str:
        return self._ledger.root

    @property
    def update_count(self) -> int:
        return self._ledger.update_count

    def history(self) -> list[RootUpdate]:
        return list(self._ledger.updates)

    def latest(self) -> RootUpdate:
        if not self._ledger.updates:
            raise NotFoundError(
                "no updates found", entity=self._state.entity, invariant="no update history"
            )
        return self._ledger.updates[-1]

    def in_history(self, root: str | bytes) -> bool:
        """True if *root* was ever committed as a new root."""
        h = normalize_hash(root)
        if h == ZERO_HASH:
            return False
        return any(u.new_root == h for u in self._ledger.updates)
