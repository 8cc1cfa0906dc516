"""Sync module: message polling and read-state tracking."""

from .read_state import ReadStateTracker
from .state import SessionState, dedupe_messages, have_messages_changed
from .synchronizer import IMessageSynchronizer, MessageSynchronizer, SyncMode

__all__ = [
    "IMessageSynchronizer",
    "MessageSynchronizer",
    "ReadStateTracker",
    "SessionState",
    "SyncMode",
    "dedupe_messages",
    "have_messages_changed",
]
