"""Logging setup helpers."""

from abac_console.utils.logging.logger_setup import (
    ISO8601JSONFormatter,
    configure_system_logger,
    get_system_logger,
    setup_jsonl_logger,
)

__all__ = [
    "ISO8601JSONFormatter",
    "configure_system_logger",
    "get_system_logger",
    "setup_jsonl_logger",
]
