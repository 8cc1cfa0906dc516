"""Structured JSON logging for the messaging core and the sandbox."""

import json
import logging
import logging.config
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import ChatSettings

# Per-request INFO lines from the HTTP stack would drown the poll loop
QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite")


class JSONFormatter(logging.Formatter):
    """One JSON object per record; `context` carries conversation/session ids."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        context = getattr(record, "context", None)
        if context:
            log_data["context"] = context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ContextAdapter(logging.LoggerAdapter):
    """Logger that merges fixed ids into each record's `context`."""

    def process(self, msg, kwargs):
        extra = kwargs.setdefault("extra", {})
        extra["context"] = {**self.extra, **extra.get("context", {})}
        return msg, kwargs


def build_logging_config(settings: ChatSettings) -> dict[str, Any]:
    """dictConfig for the given settings: rotating JSON file plus stdout."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": "portal_chat.logging_config.JSONFormatter"},
        },
        "handlers": {
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "filename": str(settings.log_file),
                "maxBytes": 10 * 1024 * 1024,
                "backupCount": 5,
                "formatter": "json",
                "encoding": "utf-8",
            },
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        "root": {
            "level": settings.log_level.upper(),
            "handlers": ["file", "console"],
        },
    }


def setup_logging(settings: ChatSettings | None = None) -> None:
    """
    Configure logging from chat settings.

    Args:
        settings: Level and log file come from `log_level`/`log_file`.
                  Defaults to ChatSettings.from_env() (LOG_LEVEL, CHAT_LOG_FILE).
    """
    settings = settings or ChatSettings.from_env()
    Path(settings.log_file).parent.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(settings))


def get_logger(name: str, **context: Any) -> logging.Logger | ContextAdapter:
    """Module logger; keyword ids are attached to every record as `context`."""
    logger = logging.getLogger(name)
    return ContextAdapter(logger, context) if context else logger
