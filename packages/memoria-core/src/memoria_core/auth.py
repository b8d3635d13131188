"""Single-principal authorization for administrative ledger operations."""

from __future__ import annotations

import logging

from memoria_core.errors import InvalidInputError, UnauthorizedError

logger = logging.getLogger(__name__)


class SingleAdminAuthorizer:
    """One privileged principal, set at construction.

    Only the current admin may hand the role to someone else.
    """

    def __init__(self, admin: str) -> None:
        if not admin or not admin.strip():
            raise InvalidInputError("admin principal cannot be empty")
        self._admin = admin

    @property
    def admin(self) -> str:
        return self._admin

    def is_admin(self, caller: str) -> bool:
        return caller == self._admin

    def require_admin(self, caller: str) -> None:
        if not self.is_admin(caller):
            logger.warning("Rejected administrative call from %r", caller)
            raise UnauthorizedError(f"caller {caller!r} is not the admin")

    def transfer_admin(self, caller: str, new_admin: str) -> None:
        self.require_admin(caller)
        if not new_admin or not new_admin.strip():
            raise InvalidInputError("admin principal cannot be empty")
        logger.info("Admin role transferred from %r to %r", self._admin, new_admin)
        self._admin = new_admin
