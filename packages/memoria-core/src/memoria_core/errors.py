"""Exception hierarchy for the learning ledger.

Every error names the invariant it protects so callers can decide whether to
retry with corrected input.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for ledger failures."""

    default_invariant = "ledger error"

    def __init__(
        self,
        message: str | None = None,
        *,
        entity: str | None = None,
        invariant: str | None = None,
    ) -> None:
        self.entity = entity
        self.invariant = invariant or self.default_invariant
        msg = message or self.invariant
        if entity is not None:
            msg = f"{msg} (entity {entity!r})"
        super().__init__(msg)


class InvalidInputError(LedgerError, ValueError):
    """Zero hash, non-leaf path query, bad hop bound, mismatched batch."""

    default_invariant = "invalid input"


class DuplicateCommitError(LedgerError):
    """New root equals the current root."""

    default_invariant = "root unchanged"


class NotFoundError(LedgerError, LookupError):
    """Missing node, leaf or update history."""

    default_invariant = "not found"


class UnauthorizedError(LedgerError, PermissionError):
    """Non-privileged caller attempted an administrative operation."""

    default_invariant = "caller is not the admin"


class StorageError(LedgerError):
    """Wraps backend-specific failures with context."""

    default_invariant = "storage failure"

    def __init__(self, backend: str, operation: str, cause: Exception) -> None:
        self.backend = backend
        self.operation = operation
        super().__init__(f"{backend} {operation} failed: {cause}")
        self.__cause__ = cause
