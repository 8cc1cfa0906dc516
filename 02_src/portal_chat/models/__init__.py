"""Core data models for Portal Chat."""

from .conversations import (
    Conversation,
    ConversationId,
    ConversationKind,
    Employee,
    Evidence,
    EvidenceKind,
    Group,
    LastMessage,
    Operator,
    VIRTUAL_ID_PREFIX,
    is_virtual_id,
    participant_from_virtual_id,
    virtual_conversation_id,
)
from .messages import (
    TEMP_ID_PREFIX,
    Attachment,
    Message,
    MessagePayload,
    parse_timestamp,
    utc_now_iso,
)

__all__ = [
    # Conversations
    "Conversation",
    "ConversationId",
    "ConversationKind",
    "Employee",
    "Evidence",
    "EvidenceKind",
    "Group",
    "LastMessage",
    "Operator",
    "VIRTUAL_ID_PREFIX",
    "is_virtual_id",
    "participant_from_virtual_id",
    "virtual_conversation_id",
    # Messages
    "TEMP_ID_PREFIX",
    "Attachment",
    "Message",
    "MessagePayload",
    "parse_timestamp",
    "utc_now_iso",
]
