"""Authorization interface for administrative operations."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Authorizer(Protocol):
    """Decides whether a caller may run administrative operations."""

    @property
    def admin(self) -> str: ...

    def require_admin(self, caller: str) -> None: ...

    def transfer_admin(self, caller: str, new_admin: str) -> None: ...
