"""
Knock handshake protocol.

Two users accumulate directed knock edges (pending, onesided, locked_in) that
converge into a symmetric locked-in relationship, gated by each user's
privacy flag. The derived relationship drives the chat gate in
friendzone.services.message_gate.

Main entry point is `KnockEngine` in engine.py.
"""

from .engine import KnockEngine, KnockCounts, RelationshipSummary
from .store import KnockStore
from .directory import UserDirectory, SqlUserDirectory
from .events import EventKind, RelationshipEvent, Notifier, LoggingNotifier, RecordingNotifier
from .errors import (
    KnockError,
    SelfTargetError,
    TargetNotFoundError,
    DuplicateEdgeError,
    EdgeNotFoundOrNotEligibleError,
    ProfileHiddenError,
    ChatRestrictedError,
    ChatNotFoundError,
    StoreUnavailableError,
)

__all__ = [
    # Engine
    "KnockEngine",
    "KnockCounts",
    "RelationshipSummary",
    "KnockStore",

    # Collaborators
    "UserDirectory",
    "SqlUserDirectory",
    "EventKind",
    "RelationshipEvent",
    "Notifier",
    "LoggingNotifier",
    "RecordingNotifier",

    # Errors
    "KnockError",
    "SelfTargetError",
    "TargetNotFoundError",
    "DuplicateEdgeError",
    "EdgeNotFoundOrNotEligibleError",
    "ProfileHiddenError",
    "ChatRestrictedError",
    "ChatNotFoundError",
    "StoreUnavailableError",
]
