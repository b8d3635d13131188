"""Storage backend interface."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from memoria_core.merkle.models import EntityState


@runtime_checkable
class LedgerBackend(Protocol):
    """Persists per-entity ledger state.

    ``load`` returns an independent copy (a fresh empty state for unknown
    entities); ``save_many`` writes every given state in one transaction.
    """

    def load(self, entity: str) -> EntityState: ...

    def save_many(self, states: list[EntityState]) -> None: ...

    def entities(self) -> list[str]: ...
