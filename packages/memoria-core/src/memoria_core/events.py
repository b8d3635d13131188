"""Structured records emitted on every ledger mutation.

External indexers consume these; the ledger itself never reads them back.
"""

from __future__ import annotations

import logging
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger("memoria.events")


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)

    entity: str
    timestamp: int


class NodeAdded(_Record):
    kind: Literal["node-added"] = "node-added"
    node_hash: str
    level: int
    position: int
    is_leaf: bool


class TreeStructureReplaced(_Record):
    kind: Literal["tree-structure-replaced"] = "tree-structure-replaced"
    previous_node_count: int
    new_node_count: int
    previous_root: str
    new_root: str


class RootUpdated(_Record):
    kind: Literal["root-updated"] = "root-updated"
    previous_root: str
    new_root: str
    reason: str
    update_count: int


class LearningMilestone(_Record):
    kind: Literal["learning-milestone"] = "learning-milestone"
    milestone: str
    value: int


LedgerEvent = Union[NodeAdded, TreeStructureReplaced, RootUpdated, LearningMilestone]


class LoggingEventSink:
    """Publishes records through stdlib logging.

    The record travels in ``extra["ledger_event"]`` so a JSON formatter can
    emit it verbatim.
    """

    def __init__(self, log: logging.Logger | None = None, level: int = logging.INFO) -> None:
        self._log = log or logger
        self._level = level

    def emit(self, event: LedgerEvent) -> None:
        self._log.log(
            self._level,
            "%s entity=%s",
            event.kind,
            event.entity,
            extra={"ledger_event": event.model_dump(mode="json")},
        )


class MemoryEventSink:
    """Keeps every record in a list, in emission order."""

    def __init__(self) -> None:
        self.events: list[LedgerEvent] = []

    def emit(self, event: LedgerEvent) -> None:
        self.events.append(event)

    def of_kind(self, kind: str) -> list[LedgerEvent]:
        return [e for e in self.events if e.kind == kind]

    def clear(self) -> None:
        self.events.clear()
