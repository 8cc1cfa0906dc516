"""Composer module: drafts, optimistic messages and attachments."""

from .attachments import (
    AttachmentKind,
    AttachmentPipeline,
    LegacyFileMessage,
    SelectedFile,
    decode,
    format_file_size,
    parse_legacy_file_message,
    preview_kind,
    save,
    short_name,
)
from .composer import (
    Composer,
    KeyAction,
    build_optimistic_message,
    build_payload,
    handle_key,
)

__all__ = [
    "AttachmentKind",
    "AttachmentPipeline",
    "LegacyFileMessage",
    "SelectedFile",
    "decode",
    "format_file_size",
    "parse_legacy_file_message",
    "preview_kind",
    "save",
    "short_name",
    "Composer",
    "KeyAction",
    "build_optimistic_message",
    "build_payload",
    "handle_key",
]
