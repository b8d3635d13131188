"""Memoria Core - per-entity learning-history trees with verifiable roots."""

from memoria_core.auth import SingleAdminAuthorizer
from memoria_core.config import MemoriaConfig, load_config
from memoria_core.errors import (
    DuplicateCommitError,
    InvalidInputError,
    LedgerError,
    NotFoundError,
    StorageError,
    UnauthorizedError,
)
from memoria_core.events import LoggingEventSink, MemoryEventSink
from memoria_core.ledger import LearningLedger
from memoria_core.merkle import TreeNode, build_tree

__version__ = "0.1.0"

__all__ = [
    "DuplicateCommitError",
    "InvalidInputError",
    "LearningLedger",
    "LedgerError",
    "LoggingEventSink",
    "MemoriaConfig",
    "MemoryEventSink",
    "NotFoundError",
    "SingleAdminAuthorizer",
    "StorageError",
    "TreeNode",
    "UnauthorizedError",
    "build_tree",
    "load_config",
]
