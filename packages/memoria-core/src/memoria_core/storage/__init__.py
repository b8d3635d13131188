"""Storage backends for ledger state."""

from __future__ import annotations

from typing import TYPE_CHECKING

from memoria_core.storage.memory import MemoryBackend
from memoria_core.storage.sqlite_backend import SQLiteBackend

if TYPE_CHECKING:
    from memoria_core.config.models import StorageConfig
    from memoria_core.interfaces.storage import LedgerBackend


def create_backend(config: StorageConfig) -> LedgerBackend:
    """Instantiate the backend named in *config*."""
    if config.backend == "memory":
        return MemoryBackend()
    return SQLiteBackend(db_path=config.path)


__all__ = [
    "MemoryBackend",
    "SQLiteBackend",
    "create_backend",
]
