"""JSONL logger setup.

All file logs are JSON lines: one object per line with an ISO 8601 UTC
"time" field. Extra fields passed via `extra=` are merged into the object,
and dict messages are merged as-is (used for structured events).

    <log_dir>/
    └── abac_console_logs/
        ├── system/
        │   └── system.jsonl       # warnings, failures, submissions
        └── audit/                 # always enabled (append-only trail)
            └── decisions.jsonl
"""

from __future__ import annotations

__all__ = [
    "ISO8601JSONFormatter",
    "configure_system_logger",
    "get_system_logger",
    "setup_jsonl_logger",
]

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from abac_console.constants import LOG_SUBDIR, SYSTEM_LOG_RELPATH

SYSTEM_LOGGER_NAME = "abac-console.system"

# Attributes present on every LogRecord; anything else came from extra=
_RESERVED_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys() | {"message", "asctime"}
)


class ISO8601JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON with ISO 8601 timestamps."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
        }

        if isinstance(record.msg, dict):
            data.update(record.msg)
        else:
            data["message"] = record.getMessage()

        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                data[key] = value

        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)

        return json.dumps(data, default=str)


def setup_jsonl_logger(name: str, log_path: Path, *, log_level: int = logging.INFO) -> logging.Logger:
    """Create (or return) a logger writing JSON lines to log_path.

    Handlers are attached once per path; calling again with the same
    name and path is a no-op.

    Args:
        name: Logger name.
        log_path: Destination .jsonl file. Parent dirs are created.
        log_level: Minimum level to record.

    Returns:
        Configured logger (propagation disabled).
    """
    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    logger.propagate = False

    resolved = str(log_path.resolve())
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == resolved:
            return logger

    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(ISO8601JSONFormatter())
    logger.addHandler(handler)
    return logger


def get_system_logger() -> logging.Logger:
    """Get the system logger.

    Until configure_system_logger() is called it only emits WARNING+
    to stderr through the root logger's last-resort handler.
    """
    return logging.getLogger(SYSTEM_LOGGER_NAME)


def configure_system_logger(log_dir: str | Path | None, log_level: str = "INFO") -> logging.Logger:
    """Attach the system.jsonl file handler under log_dir.

    Args:
        log_dir: Base log directory from config, or None to skip file logging.
        log_level: "DEBUG" or "INFO".

    Returns:
        The system logger.
    """
    if log_dir is None:
        return get_system_logger()

    level = logging.DEBUG if log_level == "DEBUG" else logging.INFO
    return setup_jsonl_logger(
        SYSTEM_LOGGER_NAME,
        Path(log_dir).expanduser() / LOG_SUBDIR / SYSTEM_LOG_RELPATH,
        log_level=level,
    )
