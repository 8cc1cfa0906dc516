"""Project-level configuration, messaging policy and path helpers."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "portal_chat_sandbox.db"
DEFAULT_LOG_PATH = LOGS_DIR / "portal_chat.log"

DEFAULT_API_URL = "http://localhost:8000/api/v1"

# Messaging cadence (seconds)
POLL_INTERVAL_SECONDS = 2.0
READ_CONFIRM_INTERVAL_SECONDS = 10.0
SEARCH_DEBOUNCE_SECONDS = 0.2
REQUEST_TIMEOUT_SECONDS = 10.0

# Attachment policy
MAX_ATTACHMENT_BYTES = 10 * 1024 * 1024  # 10 MiB, inclusive
ALLOWED_ATTACHMENT_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "text/plain",
        "text/csv",
    }
)
DEFAULT_ATTACHMENT_CAPTION = "File attachment"

# Employee statuses that make someone a valid chat recipient
ACTIVE_EMPLOYEE_STATUSES = frozenset({"active", "approved"})


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        DATA_DIR.mkdir(parents=True, exist_ok=True)
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class ChatSettings:
    """Runtime settings for the messaging core."""

    api_url: str = DEFAULT_API_URL
    api_token: str | None = None
    poll_interval: float = POLL_INTERVAL_SECONDS
    read_confirm_interval: float = READ_CONFIRM_INTERVAL_SECONDS
    search_debounce: float = SEARCH_DEBOUNCE_SECONDS
    request_timeout: float = REQUEST_TIMEOUT_SECONDS
    max_attachment_bytes: int = MAX_ATTACHMENT_BYTES
    allowed_attachment_types: frozenset[str] = ALLOWED_ATTACHMENT_TYPES
    log_level: str = "INFO"
    log_file: PathLike = DEFAULT_LOG_PATH

    @classmethod
    def from_env(cls) -> "ChatSettings":
        """Build settings from CHAT_* environment variables and LOG_LEVEL."""
        return cls(
            api_url=os.getenv("CHAT_API_URL", DEFAULT_API_URL).rstrip("/"),
            api_token=os.getenv("CHAT_API_TOKEN") or None,
            poll_interval=_env_float("CHAT_POLL_INTERVAL", POLL_INTERVAL_SECONDS),
            read_confirm_interval=_env_float(
                "CHAT_READ_INTERVAL", READ_CONFIRM_INTERVAL_SECONDS
            ),
            search_debounce=_env_float("CHAT_SEARCH_DEBOUNCE", SEARCH_DEBOUNCE_SECONDS),
            request_timeout=_env_float("CHAT_REQUEST_TIMEOUT", REQUEST_TIMEOUT_SECONDS),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("CHAT_LOG_FILE") or DEFAULT_LOG_PATH,
        )
