"""Conversion between backend JSON records and core models."""

from typing import Any

from ..directory.membership import extract_evidence
from ..models import (
    Attachment,
    Conversation,
    ConversationKind,
    Employee,
    Group,
    LastMessage,
    Message,
    MessagePayload,
)


def _pick(record: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return default


def parse_attachment(record: dict[str, Any]) -> Attachment:
    return Attachment(
        name=str(record.get("name") or "file"),
        type=str(record.get("type") or "application/octet-stream"),
        size=int(record.get("size") or 0),
        data=str(record.get("data") or ""),
    )


def parse_message(record: dict[str, Any]) -> Message:
    attachments = [
        parse_attachment(a) for a in (record.get("attachments") or []) if isinstance(a, dict)
    ]
    content = str(_pick(record, "content", default=""))
    return Message(
        id=str(record["id"]),
        sender_id=str(_pick(record, "senderId", "sender_id", default="")),
        sender_name=str(_pick(record, "senderName", "sender_name", default="")),
        sender_role=str(_pick(record, "senderRole", "sender_role", default="")),
        content=content,
        text_content=str(_pick(record, "textContent", "text_content", default=content)),
        attachments=attachments,
        has_attachments=bool(
            _pick(record, "hasAttachments", "has_attachments", default=bool(attachments))
        ),
        timestamp=str(_pick(record, "timestamp", "created_at", default="")),
    )


def parse_conversation(record: dict[str, Any]) -> Conversation:
    try:
        kind = ConversationKind(str(record.get("type", "private")).lower())
    except ValueError:
        kind = ConversationKind.PRIVATE

    last = record.get("lastMessage") or record.get("last_message")
    last_message = None
    if isinstance(last, dict):
        last_message = LastMessage(
            content=str(last.get("content") or ""),
            timestamp=str(last.get("timestamp") or ""),
        )

    return Conversation(
        id=record["id"],
        kind=kind,
        display_name=str(_pick(record, "name", "displayName", default="")),
        last_message=last_message,
        unread_count=max(0, int(_pick(record, "unreadCount", "unread_count", default=0))),
        evidence=extract_evidence(record),
        created_at=_pick(record, "createdAt", "created_at"),
    )


def parse_employee(record: dict[str, Any]) -> Employee:
    personal = record.get("personalInfo") or {}
    return Employee(
        id=str(record["id"]),
        first_name=str(record.get("first_name") or personal.get("firstName") or ""),
        last_name=str(record.get("last_name") or personal.get("lastName") or ""),
        status=str(record.get("status") or ""),
        created_at=record.get("created_at"),
    )


def parse_group(record: dict[str, Any]) -> Group:
    members = record.get("members") or record.get("participant_ids") or []
    return Group(
        id=record["id"],
        name=str(record.get("name") or ""),
        member_ids=[str(m) for m in members if not isinstance(m, dict)],
        created_at=_pick(record, "createdAt", "created_at"),
    )


def attachment_to_wire(attachment: Attachment) -> dict[str, Any]:
    return {
        "name": attachment.name,
        "type": attachment.type,
        "size": attachment.size,
        "data": attachment.data,
    }


def payload_to_wire(payload: MessagePayload) -> dict[str, Any]:
    """Outgoing JSON body; attachments only when present."""
    body: dict[str, Any] = {
        "content": payload.content,
        "text_content": payload.text_content,
        "has_attachments": payload.has_attachments,
    }
    if payload.attachments:
        body["attachments"] = [attachment_to_wire(a) for a in payload.attachments]
    return body
