"""Message-related data models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

TEMP_ID_PREFIX = "temp_"


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO instant (accepting a trailing 'Z'); None when missing or invalid."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def utc_now_iso() -> str:
    """Current instant as an ISO string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


@dataclass
class Attachment:
    """A file sent inside a message, carried as a self-contained data URL."""

    name: str
    type: str  # media type, e.g. "image/png"
    size: int  # bytes
    data: str  # "data:<type>;base64,<payload>"

    @property
    def is_image(self) -> bool:
        return self.type.startswith("image/")


@dataclass
class Message:
    """A single message in a conversation."""

    id: str
    sender_id: str
    sender_name: str
    sender_role: str
    content: str
    timestamp: str
    text_content: str = ""
    attachments: list[Attachment] = field(default_factory=list)
    has_attachments: bool = False
    # Local-only flags for optimistic messages
    pending: bool = False
    failed: bool = False

    @property
    def is_optimistic(self) -> bool:
        return str(self.id).startswith(TEMP_ID_PREFIX)

    @property
    def sent_at(self) -> datetime | None:
        return parse_timestamp(self.timestamp)


@dataclass
class MessagePayload:
    """Outgoing message body as produced by the composer."""

    content: str
    text_content: str = ""
    attachments: list[Attachment] = field(default_factory=list)
    has_attachments: bool = False

    @classmethod
    def from_text(cls, text: str) -> "MessagePayload":
        return cls(content=text, text_content=text)

    def is_empty(self) -> bool:
        return not self.content.strip() and not self.attachments
