"""In-process LedgerBackend, for tests and embedding."""

from __future__ import annotations

from memoria_core.merkle.models import EntityState


class MemoryBackend:
    """Keeps states in a dict. Loads and saves copy, so callers never alias."""

    def __init__(self) -> None:
        self._states: dict[str, EntityState] = {}

    def load(self, entity: str) -> EntityState:
        state = self._states.get(entity)
        if state is None:
            return EntityState(entity=entity)
        return state.clone()

    def save_many(self, states: list[EntityState]) -> None:
        for state in states:
            self._states[state.entity] = state.clone()

    def entities(self) -> list[str]:
        return sorted(self._states)
