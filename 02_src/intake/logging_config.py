"""Structured logging configuration for the intake service.

Every line is a JSON object. Session-scoped lines carry the session
identifiers at the top level so a single conversation can be followed with
a plain ``grep '"thread_id": "T1"'`` over the log file.
"""

import json
import logging
import logging.config
import logging.handlers
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import DEFAULT_LOG_PATH

# Third-party loggers that are chatty at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "anthropic", "aiosqlite")

_CONTEXT_KEYS = ("session_id", "user_id", "thread_id", "message_id", "status")


class JSONFormatter(logging.Formatter):
    """One JSON object per record; ``extra={"context": {...}}`` is flattened in."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        context = getattr(record, "context", None)
        if isinstance(context, dict):
            for key, value in context.items():
                if value is not None:
                    entry[key if key in _CONTEXT_KEYS else f"ctx_{key}"] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def session_context(session: Any) -> dict[str, Any]:
    """
    Build the `context` extra for a session-scoped log line.

    Args:
        session: Any object with user_id/thread_id and optionally id/status.

    Returns:
        Dict suitable for ``logger.info(..., extra={"context": ...})``.
    """
    status = getattr(session, "status", None)
    return {
        "session_id": getattr(session, "id", None),
        "user_id": getattr(session, "user_id", None),
        "thread_id": getattr(session, "thread_id", None),
        "status": getattr(status, "value", status),
    }


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
) -> None:
    """
    Configure root logging: JSON to a rotating file and to stdout.

    Args:
        log_level: DEBUG, INFO, ... Defaults to LOG_LEVEL env var or INFO.
        log_file: Defaults to LOG_FILE env var or 04_logs/app.log.
    """
    level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_path = Path(log_file or os.getenv("LOG_FILE") or DEFAULT_LOG_PATH)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {"()": "intake.logging_config.JSONFormatter"},
            },
            "handlers": {
                "file": {
                    "class": "logging.handlers.RotatingFileHandler",
                    "filename": str(log_path),
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
            "loggers": {name: {"level": "WARNING"} for name in _QUIET_LOGGERS},
            "root": {"level": level, "handlers": ["file", "console"]},
        }
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance (typically for ``__name__``)."""
    return logging.getLogger(name)
