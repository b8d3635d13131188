"""Seams to collaborators: authorization, storage and record sinks."""

from memoria_core.interfaces.auth import Authorizer
from memoria_core.interfaces.events import EventSink
from memoria_core.interfaces.storage import LedgerBackend

__all__ = [
    "Authorizer",
    "EventSink",
    "LedgerBackend",
]
