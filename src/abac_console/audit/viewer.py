"""Audit log viewer - read-only browsing of decision log entries.

Holds the state of one viewing session (current page, filters, search
term, selection) over an AuditLogSource: the remote platform API or the
local decisions.jsonl store.

Behavior:
- Changing the page or any filter refetches; filter changes go back to
  page 1. Other pages are never cached.
- The search term narrows the loaded page only and never refetches, so
  results are bounded by what is loaded.
- Fetch failures keep the previously loaded entries (stale but
  available) and record last_error.
- Each load takes a sequence number; a response is applied only if no
  newer load started meanwhile, so a slow stale response cannot overwrite
  a fresher one.
"""

from __future__ import annotations

__all__ = [
    "AuditLogViewer",
    "Pagination",
    "search_entries",
]

import threading
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

from abac_console.audit.export import convert_to_csv, export_filename, write_export
from abac_console.audit.models import (
    AuditLogFilters,
    AuditLogQuery,
    AuditLogSource,
    DecisionLogEntry,
)
from abac_console.constants import DEFAULT_PAGE_SIZE, EXPORT_LIMIT
from abac_console.exceptions import ABACConsoleError, APIError, ExportError
from abac_console.utils.logging import get_system_logger

_logger = get_system_logger()


@dataclass
class Pagination:
    """Pagination state. page is 1-indexed; total/pages come from the source."""

    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    total: int = 0
    pages: int = 0


def search_entries(entries: Iterable[DecisionLogEntry], term: str) -> list[DecisionLogEntry]:
    """Case-insensitive substring search over loaded entries.

    Matches decisionId, userId, userRole, action, resourceType, or any
    applied policy's name or ID. An empty term returns everything.
    """
    if not term:
        return list(entries)

    needle = term.lower()

    def hit(entry: DecisionLogEntry) -> bool:
        fields = (entry.decision_id, entry.user_id, entry.user_role, entry.action, entry.resource_type)
        if any(needle in f.lower() for f in fields):
            return True
        return any(
            needle in p.policy_name.lower() or needle in p.policy_id.lower() for p in entry.applied_policies
        )

    return [entry for entry in entries if hit(entry)]


class AuditLogViewer:
    """Query, filter, search, paginate, inspect and export decision logs.

    Usage:
        viewer = AuditLogViewer(client)
        viewer.load_audit_logs()
        viewer.update_filters(decision=Decision.DENY)
        viewer.search_term = "tenant"
        for entry in viewer.filtered_logs:
            ...
    """

    def __init__(
        self,
        source: AuditLogSource,
        *,
        limit: int = DEFAULT_PAGE_SIZE,
        export_limit: int = EXPORT_LIMIT,
    ) -> None:
        self.source = source
        self.export_limit = export_limit
        self.logs: list[DecisionLogEntry] = []
        self.pagination = Pagination(limit=limit)
        self.filters = AuditLogFilters()
        self.search_term = ""
        self.selected: DecisionLogEntry | None = None
        self.loading = False
        self.last_error: str | None = None

        self._lock = threading.Lock()
        self._seq = 0

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_audit_logs(self) -> bool:
        """Fetch the current page under the current filters.

        Returns:
            True if the response was applied; False on failure or if a
            newer load superseded this one.
        """
        with self._lock:
            self._seq += 1
            seq = self._seq
            query = AuditLogQuery(
                page=self.pagination.page,
                limit=self.pagination.limit,
                filters=self.filters,
            )
            self.loading = True

        try:
            page = self.source.fetch_audit_logs(query)
        except APIError as e:
            _logger.warning(
                "Failed to load audit logs",
                extra={"event": "audit_logs_fetch_failed", "page": query.page, "error": str(e)},
            )
            with self._lock:
                if seq == self._seq:
                    self.last_error = f"Failed to load audit logs: {e}"
                    self.loading = False
            return False

        with self._lock:
            if seq != self._seq:
                return False
            self.logs = list(page.logs)
            self.pagination.total = page.total
            self.pagination.pages = page.pages
            self.last_error = None
            self.loading = False
        return True

    def refresh(self) -> bool:
        """Reload the current page."""
        return self.load_audit_logs()

    def update_filters(self, **changes: Any) -> bool:
        """Change one or more filters (decision, resource_type, action) and refetch.

        Pass None to clear a filter. Resets to page 1.

        Raises:
            TypeError: If an unknown filter name is given.
        """
        unknown = set(changes) - set(AuditLogFilters.model_fields)
        if unknown:
            raise TypeError(f"Unknown filter(s): {', '.join(sorted(unknown))}")

        self.filters = AuditLogFilters.model_validate({**self.filters.model_dump(), **changes})
        self.pagination.page = 1
        return self.load_audit_logs()

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    @property
    def can_previous(self) -> bool:
        return self.pagination.page > 1

    @property
    def can_next(self) -> bool:
        return self.pagination.page < self.pagination.pages

    def go_to_page(self, page: int) -> bool:
        """Jump to a page (1-indexed) and refetch."""
        if page < 1:
            raise ValueError("page must be >= 1")
        self.pagination.page = page
        return self.load_audit_logs()

    def next_page(self) -> bool:
        """Advance one page. No-op returning False when Next is disabled."""
        if not self.can_next:
            return False
        return self.go_to_page(self.pagination.page + 1)

    def previous_page(self) -> bool:
        """Go back one page. No-op returning False when Previous is disabled."""
        if not self.can_previous:
            return False
        return self.go_to_page(self.pagination.page - 1)

    # ------------------------------------------------------------------
    # Search & inspection
    # ------------------------------------------------------------------

    @property
    def filtered_logs(self) -> list[DecisionLogEntry]:
        """Loaded entries narrowed by search_term (no refetch)."""
        return search_entries(self.logs, self.search_term)

    def inspect(self, decision_id: str) -> DecisionLogEntry | None:
        """Select a loaded entry by decision ID for detail display."""
        self.selected = next((e for e in self.logs if e.decision_id == decision_id), None)
        return self.selected

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_logs(self, directory: Path, *, today: date | None = None) -> Path:
        """Export up to export_limit entries under the current filters.

        Pagination is ignored; the search term is not applied.

        Args:
            directory: Where to write the CSV file.
            today: Date for the file name (defaults to today, UTC).

        Returns:
            Path of the written file.

        Raises:
            ExportError: If fetching or writing fails. No partial file
                is left behind and the loaded page is untouched.
        """
        query = AuditLogQuery(page=1, limit=self.export_limit, filters=self.filters)
        try:
            page = self.source.fetch_audit_logs(query)
            return write_export(convert_to_csv(page.logs), directory, export_filename(today))
        except ABACConsoleError as e:
            _logger.warning(
                "Failed to export audit logs",
                extra={"event": "export_failed", "error": str(e)},
            )
            if isinstance(e, ExportError):
                raise
            raise ExportError(f"Failed to export audit logs: {e}") from e
