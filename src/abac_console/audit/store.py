"""Local decision log store (audit/decisions.jsonl).

Read side of the append-only decision trail written by DecisionLogger.
Serves the same fetch_audit_logs() contract as the remote API so the
AuditLogViewer can browse either.

Reads are bounded to the last 10MB of the file and return entries newest
first. Malformed lines are skipped.
"""

from __future__ import annotations

__all__ = ["DecisionLogStore"]

import json
from collections import defaultdict
from pathlib import Path

from pydantic import ValidationError

from abac_console.audit.models import (
    AuditLogFilters,
    AuditLogPage,
    AuditLogQuery,
    AuditStatistics,
    DecisionLogEntry,
    DecisionStats,
    DenialSummary,
    PolicyStats,
)
from abac_console.constants import MAX_LOG_READ_BYTES
from abac_console.pdp.decision import Decision
from abac_console.utils.logging import get_system_logger

_logger = get_system_logger()


class DecisionLogStore:
    """Query interface over a decisions.jsonl file.

    Usage:
        store = DecisionLogStore(get_decisions_log_path(config))
        page = store.fetch_audit_logs(AuditLogQuery(page=2, limit=50))
    """

    def __init__(self, path: Path, *, max_read_bytes: int = MAX_LOG_READ_BYTES) -> None:
        self.path = path
        self._max_read_bytes = max_read_bytes

    def read_entries(self) -> list[DecisionLogEntry]:
        """Read all parseable entries, newest first.

        Returns:
            Entries from the tail of the file (bounded by max_read_bytes).
        """
        if not self.path.exists():
            return []

        try:
            file_size = self.path.stat().st_size
            if file_size == 0:
                return []

            read_size = min(file_size, self._max_read_bytes)
            with self.path.open("rb") as f:
                f.seek(max(0, file_size - read_size))
                # If we didn't start at beginning, skip partial first line
                if file_size > read_size:
                    f.readline()
                content = f.read().decode("utf-8", errors="replace")
        except OSError as e:
            _logger.warning(
                "Could not read decision log",
                extra={"event": "decision_log_read_failed", "path": str(self.path), "error": str(e)},
            )
            return []

        entries: list[DecisionLogEntry] = []
        for line in reversed(content.splitlines()):
            if not line.strip():
                continue
            try:
                entries.append(DecisionLogEntry.model_validate(json.loads(line)))
            except (json.JSONDecodeError, ValidationError):
                # Skip malformed lines
                continue
        return entries

    def query(self, filters: AuditLogFilters | None = None) -> list[DecisionLogEntry]:
        """All entries matching the filters, newest first."""
        filters = filters or AuditLogFilters()
        return [entry for entry in self.read_entries() if filters.matches(entry)]

    def fetch_audit_logs(self, query: AuditLogQuery) -> AuditLogPage:
        """Serve one page, same shape as GET /abac/audit-logs."""
        matching = self.query(query.filters)
        start = (query.page - 1) * query.limit
        return AuditLogPage.from_slice(matching[start : start + query.limit], len(matching), query.limit)

    def find(self, decision_id: str) -> DecisionLogEntry | None:
        """Look up one entry by decision ID."""
        for entry in self.read_entries():
            if entry.decision_id == decision_id:
                return entry
        return None

    def statistics(
        self,
        filters: AuditLogFilters | None = None,
        *,
        top: int = 5,
        recent_denials: int = 5,
    ) -> AuditStatistics:
        """Compute statistics over every entry matching the filters.

        Args:
            filters: Optional filters; all entries when None.
            top: Number of most-evaluated policies to return.
            recent_denials: Number of newest DENY entries to return.

        Returns:
            AuditStatistics over the full filtered set.
        """
        entries = self.query(filters)

        counts: dict[Decision, int] = defaultdict(int)
        times: dict[Decision, float] = defaultdict(float)
        evaluated: dict[str, int] = defaultdict(int)
        matched: dict[str, int] = defaultdict(int)
        names: dict[str, str] = {}

        for entry in entries:
            counts[entry.decision] += 1
            times[entry.decision] += entry.evaluation_time
            for applied in entry.applied_policies:
                evaluated[applied.policy_id] += 1
                names.setdefault(applied.policy_id, applied.policy_name)
                if applied.matched:
                    matched[applied.policy_id] += 1

        overview = [
            DecisionStats(
                decision=decision,
                count=counts[decision],
                avg_evaluation_time=round(times[decision] / counts[decision], 3),
            )
            for decision in Decision
            if counts[decision]
        ]

        ranked = sorted(evaluated, key=lambda pid: (-evaluated[pid], pid))[:top]
        top_policies = [
            PolicyStats(
                policy_id=pid,
                name=names[pid],
                evaluation_count=evaluated[pid],
                match_count=matched[pid],
                success_rate=round(100 * matched[pid] / evaluated[pid], 1),
            )
            for pid in ranked
        ]

        denials = [
            DenialSummary.from_entry(entry) for entry in entries if entry.decision == Decision.DENY
        ][:recent_denials]

        return AuditStatistics(
            total=len(entries),
            overview=overview,
            top_policies=top_policies,
            recent_denials=denials,
        )
