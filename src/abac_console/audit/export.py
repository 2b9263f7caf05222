"""CSV export of decision log entries.

Format:
- UTF-8, comma-delimited, "\n" line endings
- Every field double-quoted, internal quotes doubled
- Fixed column order (constants.CSV_HEADERS)
- Applied policies flattened as "name(effect); name(effect)"
- Timestamps as ISO 8601 UTC with milliseconds ("2024-01-15T10:30:00.000Z")

Files are written atomically so a failed export never leaves a partial file.
"""

from __future__ import annotations

__all__ = [
    "convert_to_csv",
    "export_filename",
    "format_timestamp",
    "write_export",
]

from collections.abc import Iterable
from datetime import date, datetime, timezone
from pathlib import Path

from abac_console.audit.models import DecisionLogEntry
from abac_console.constants import CSV_HEADERS, EXPORT_FILENAME_PREFIX
from abac_console.exceptions import ExportError
from abac_console.utils.file_helpers import atomic_write_text


def format_timestamp(value: datetime) -> str:
    """ISO 8601 UTC with millisecond precision and a "Z" suffix.

    Naive datetimes are treated as UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc = value.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def _quote(field: object) -> str:
    return '"' + str(field).replace('"', '""') + '"'


def _row(entry: DecisionLogEntry) -> list[str]:
    return [
        entry.decision_id,
        entry.user_id,
        entry.user_role,
        entry.action,
        entry.resource_type,
        entry.resource_id or "",
        entry.decision.value,
        _format_number(entry.evaluation_time),
        entry.ip_address or "",
        entry.endpoint or "",
        entry.method or "",
        "; ".join(f"{p.policy_name}({p.effect.value})" for p in entry.applied_policies),
        format_timestamp(entry.created_at),
    ]


def convert_to_csv(entries: Iterable[DecisionLogEntry]) -> str:
    """Serialize entries to CSV text (header row first).

    Args:
        entries: Decision log entries in the order to export.

    Returns:
        CSV text without a trailing newline.
    """
    rows = [list(CSV_HEADERS), *(_row(entry) for entry in entries)]
    return "\n".join(",".join(_quote(field) for field in row) for row in rows)


def export_filename(today: date | None = None) -> str:
    """Export file name: abac-audit-logs-<YYYY-MM-DD>.csv (UTC date by default)."""
    today = today or datetime.now(timezone.utc).date()
    return f"{EXPORT_FILENAME_PREFIX}{today.isoformat()}.csv"


def write_export(content: str, directory: Path, filename: str) -> Path:
    """Write CSV content atomically into directory.

    Returns:
        Path of the written file.

    Raises:
        ExportError: If the file cannot be written. No partial file remains.
    """
    target = directory / filename
    try:
        atomic_write_text(target, content, prefix=".export_")
    except OSError as e:
        raise ExportError(f"Could not write export to {target}: {e}") from e
    return target
