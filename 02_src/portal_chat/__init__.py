"""Portal Chat: admin/employee messaging core."""

from .app import IMessagingCore, MessagingCore
from .backend import HttpChatBackend, IChatBackend
from .composer import AttachmentPipeline, Composer, SelectedFile
from .config import ChatSettings
from .directory import ConversationDirectory, FilterType, resolve
from .errors import AttachmentRejected, BackendError, ChatError
from .event_bus import EventBus, IEventBus, Topic, ViewEvent
from .models import (
    Attachment,
    Conversation,
    ConversationKind,
    Employee,
    Group,
    Message,
    MessagePayload,
    Operator,
)
from .session import ConversationSession
from .sync import MessageSynchronizer, ReadStateTracker, SyncMode

__all__ = [
    # Core
    "IMessagingCore",
    "MessagingCore",
    "ChatSettings",
    # Backend
    "IChatBackend",
    "HttpChatBackend",
    # Models
    "Attachment",
    "Conversation",
    "ConversationKind",
    "Employee",
    "Group",
    "Message",
    "MessagePayload",
    "Operator",
    # Components
    "ConversationDirectory",
    "FilterType",
    "resolve",
    "ConversationSession",
    "MessageSynchronizer",
    "ReadStateTracker",
    "SyncMode",
    "AttachmentPipeline",
    "Composer",
    "SelectedFile",
    "EventBus",
    "IEventBus",
    "Topic",
    "ViewEvent",
    # Errors
    "ChatError",
    "BackendError",
    "AttachmentRejected",
]
