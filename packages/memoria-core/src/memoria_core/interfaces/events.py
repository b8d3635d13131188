"""Event sink interface."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from memoria_core.events import LedgerEvent


@runtime_checkable
class EventSink(Protocol):
    """Receives structured records after a mutation commits."""

    def emit(self, event: LedgerEvent) -> None: ...
