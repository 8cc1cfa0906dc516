"""Message composer: draft state, payload building and optimistic messages."""

import itertools
import time
from enum import Enum
from typing import Iterable

from ..config import DEFAULT_ATTACHMENT_CAPTION
from ..errors import AttachmentRejected
from ..models import (
    TEMP_ID_PREFIX,
    Attachment,
    Message,
    MessagePayload,
    Operator,
    utc_now_iso,
)
from .attachments import AttachmentPipeline, SelectedFile

_temp_counter = itertools.count(1)


class KeyAction(str, Enum):
    """Result of a key press in the composer."""

    SUBMIT = "submit"
    NEWLINE = "newline"
    NONE = "none"


def handle_key(key: str, shift: bool = False) -> KeyAction:
    """Enter submits; Shift+Enter inserts a line break."""
    if key != "Enter":
        return KeyAction.NONE
    return KeyAction.NEWLINE if shift else KeyAction.SUBMIT


def build_payload(
    text: str,
    attachments: list[Attachment] | None = None,
    caption: str = DEFAULT_ATTACHMENT_CAPTION,
) -> MessagePayload | None:
    """Outgoing payload, or None when there is nothing to send."""
    trimmed = (text or "").strip()
    if attachments:
        return MessagePayload(
            content=trimmed or caption,
            text_content=trimmed,
            attachments=list(attachments),
            has_attachments=True,
        )
    if not trimmed:
        return None
    return MessagePayload(content=trimmed, text_content=trimmed)


def temporary_message_id() -> str:
    return f"{TEMP_ID_PREFIX}{int(time.time() * 1000)}_{next(_temp_counter)}"


def build_optimistic_message(payload: MessagePayload, operator: Operator) -> Message:
    """Local stand-in shown until the server copy arrives."""
    return Message(
        id=temporary_message_id(),
        sender_id=operator.id,
        sender_name=operator.name,
        sender_role=operator.role,
        content=payload.content,
        text_content=payload.text_content,
        attachments=list(payload.attachments),
        has_attachments=payload.has_attachments,
        timestamp=utc_now_iso(),
        pending=True,
    )


class Composer:
    """Draft text plus the files waiting to be sent."""

    def __init__(self, pipeline: AttachmentPipeline | None = None):
        self._pipeline = pipeline or AttachmentPipeline()
        self.text = ""
        self._files: list[SelectedFile] = []

    @property
    def files(self) -> list[SelectedFile]:
        return list(self._files)

    def attach(self, files: Iterable[SelectedFile]) -> list[AttachmentRejected]:
        """Add the acceptable files; return rejections the operator must see."""
        accepted, rejected = self._pipeline.screen(files)
        self._files.extend(accepted)
        return [r for r in rejected if r.blocking]

    def remove_file(self, index: int) -> None:
        if 0 <= index < len(self._files):
            del self._files[index]

    def press(self, key: str, shift: bool = False) -> KeyAction:
        action = handle_key(key, shift)
        if action == KeyAction.NEWLINE:
            self.text += "\n"
        return action

    def is_empty(self) -> bool:
        return not self.text.strip() and not self._files

    def take_payload(self) -> MessagePayload | None:
        """Encode the draft into a payload and reset the composer."""
        payload = build_payload(self.text, self._pipeline.encode_all(self._files))
        if payload is not None:
            self.clear()
        return payload

    def clear(self) -> None:
        self.text = ""
        self._files = []
