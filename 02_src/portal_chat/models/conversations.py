"""Conversation, participant and operator data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from ..config import ACTIVE_EMPLOYEE_STATUSES

ConversationId = Union[int, str]

VIRTUAL_ID_PREFIX = "employee_"


def virtual_conversation_id(participant_id: str | int) -> str:
    """Deterministic placeholder id for a participant without a persisted conversation."""
    return f"{VIRTUAL_ID_PREFIX}{participant_id}"


def is_virtual_id(conversation_id: ConversationId) -> bool:
    return isinstance(conversation_id, str) and conversation_id.startswith(
        VIRTUAL_ID_PREFIX
    )


def participant_from_virtual_id(conversation_id: ConversationId) -> str | None:
    if not is_virtual_id(conversation_id):
        return None
    return str(conversation_id)[len(VIRTUAL_ID_PREFIX):]


class ConversationKind(str, Enum):
    """Conversation types."""

    PRIVATE = "private"
    GROUP = "group"


class EvidenceKind(str, Enum):
    """Backend field shapes that carry conversation membership."""

    MEMBERS = "members"
    PARTICIPANTS = "participants"
    PARTICIPANT_IDS = "participant_ids"
    RECIPIENT_ID = "recipient_id"
    EMPLOYEE_ID = "employee_id"
    USER_ID = "user_id"


@dataclass(frozen=True)
class Evidence:
    """Participant ids found in one membership field of a backend record."""

    kind: EvidenceKind
    ids: tuple[str, ...]

    def contains(self, participant_id: str | int) -> bool:
        return str(participant_id) in self.ids


@dataclass
class LastMessage:
    """Summary of the newest message, for list rendering."""

    content: str
    timestamp: str


@dataclass
class Employee:
    """A roster entry that the operator can message."""

    id: str
    first_name: str = ""
    last_name: str = ""
    status: str = ""
    created_at: str | None = None

    @property
    def display_name(self) -> str:
        return f"{self.first_name or 'Employee'} {self.last_name or ''}".strip()

    @property
    def is_active(self) -> bool:
        return self.status.lower() in ACTIVE_EMPLOYEE_STATUSES


@dataclass
class Group:
    """A group conversation as listed by the backend."""

    id: ConversationId
    name: str
    member_ids: list[str] = field(default_factory=list)
    created_at: str | None = None


@dataclass
class Conversation:
    """A persisted or virtual conversation."""

    id: ConversationId
    kind: ConversationKind
    display_name: str
    participant_ref: str | None = None
    last_message: LastMessage | None = None
    unread_count: int = 0
    evidence: tuple[Evidence, ...] = ()
    employee: Employee | None = None
    created_at: str | None = None

    @property
    def is_virtual(self) -> bool:
        return is_virtual_id(self.id)

    @property
    def is_group(self) -> bool:
        return self.kind == ConversationKind.GROUP

    @property
    def has_unread(self) -> bool:
        return self.unread_count > 0


@dataclass(frozen=True)
class Operator:
    """The signed-in person using the messaging view."""

    id: str
    name: str
    role: str
    is_admin: bool = False

    @classmethod
    def admin(cls) -> "Operator":
        return cls(id="admin", name="Management", role="Admin", is_admin=True)
