"""Attachment pipeline: policy checks, self-contained encoding and rendering helpers."""

import base64
import binascii
import mimetypes
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable

from ..config import ALLOWED_ATTACHMENT_TYPES, MAX_ATTACHMENT_BYTES
from ..errors import AttachmentRejected
from ..logging_config import get_logger
from ..models import Attachment

logger = get_logger(__name__)

LEGACY_IMAGE_MARKER = "📷 Image:"
LEGACY_DOCUMENT_MARKER = "📄 Document:"


@dataclass
class SelectedFile:
    """A file picked by the operator, not yet encoded."""

    name: str
    type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path: str | Path, media_type: str | None = None) -> "SelectedFile":
        path = Path(path)
        guessed, _ = mimetypes.guess_type(path.name)
        return cls(
            name=path.name,
            type=media_type or guessed or "application/octet-stream",
            content=path.read_bytes(),
        )


class AttachmentKind(str, Enum):
    """How an attachment is previewed."""

    IMAGE = "image"
    DOCUMENT = "document"


@dataclass
class LegacyFileMessage:
    """File reference embedded in message text by older clients."""

    kind: AttachmentKind
    file_name: str


def format_size_limit(max_bytes: int) -> str:
    return f"{max_bytes // (1024 * 1024)}MB"


class AttachmentPipeline:
    """Filters file selections by media type and size and encodes them."""

    def __init__(
        self,
        max_bytes: int = MAX_ATTACHMENT_BYTES,
        allowed_types: Iterable[str] = ALLOWED_ATTACHMENT_TYPES,
    ):
        self._max_bytes = max_bytes
        self._allowed_types = frozenset(allowed_types)

    @property
    def max_bytes(self) -> int:
        return self._max_bytes

    def validate(self, file: SelectedFile) -> None:
        """Raise AttachmentRejected if the file violates the policy."""
        if file.size > self._max_bytes:
            raise AttachmentRejected(
                file.name,
                f"File exceeds the {format_size_limit(self._max_bytes)} limit",
                blocking=True,
            )
        if file.type not in self._allowed_types:
            raise AttachmentRejected(file.name, f"Unsupported file type {file.type}")

    def screen(
        self, files: Iterable[SelectedFile]
    ) -> tuple[list[SelectedFile], list[AttachmentRejected]]:
        """Split a selection into accepted files and rejections."""
        accepted: list[SelectedFile] = []
        rejected: list[AttachmentRejected] = []
        for file in files:
            try:
                self.validate(file)
            except AttachmentRejected as e:
                logger.info("Attachment rejected: %s", e)
                rejected.append(e)
                continue
            accepted.append(file)
        return accepted, rejected

    def accept(self, files: Iterable[SelectedFile]) -> list[SelectedFile]:
        """Files that pass the policy; the rest are dropped."""
        accepted, _ = self.screen(files)
        return accepted

    def encode(self, file: SelectedFile) -> Attachment:
        encoded = base64.b64encode(file.content).decode("ascii")
        return Attachment(
            name=file.name,
            type=file.type,
            size=file.size,
            data=f"data:{file.type};base64,{encoded}",
        )

    def encode_all(self, files: Iterable[SelectedFile]) -> list[Attachment]:
        return [self.encode(file) for file in files]


def decode(attachment: Attachment) -> bytes:
    """Original bytes of an attachment (accepts a data URL or bare base64)."""
    data = attachment.data
    if data.startswith("data:"):
        _, _, data = data.partition(",")
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Attachment {attachment.name} has a malformed payload") from e


def save(attachment: Attachment, directory: str | Path) -> Path:
    """Download: write the decoded attachment under its own file name."""
    target = Path(directory) / Path(attachment.name).name
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(decode(attachment))
    return target


def preview_kind(attachment: Attachment) -> AttachmentKind:
    return AttachmentKind.IMAGE if attachment.is_image else AttachmentKind.DOCUMENT


def format_file_size(size: int) -> str:
    """Human readable size: '0 Bytes', '512 Bytes', '1.5 KB', '2 MB'."""
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {units[i]}"


def short_name(name: str, limit: int = 15) -> str:
    return name if len(name) <= limit else name[:limit] + "..."


def parse_legacy_file_message(content: str) -> LegacyFileMessage | None:
    """Recognize '📷 Image: name' / '📄 Document: name' texts from older clients."""
    if LEGACY_IMAGE_MARKER in content:
        kind = AttachmentKind.IMAGE
    elif LEGACY_DOCUMENT_MARKER in content:
        kind = AttachmentKind.DOCUMENT
    else:
        return None
    parts = content.split(": ", 1)
    file_name = parts[1].strip() if len(parts) > 1 and parts[1].strip() else "Unknown file"
    return LegacyFileMessage(kind=kind, file_name=file_name)
