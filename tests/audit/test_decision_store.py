"""Tests for the local decision log store.

Tests use the AAA pattern (Arrange-Act-Assert) for clarity.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from abac_console.audit.models import AppliedPolicy, AuditLogFilters, AuditLogQuery, DecisionLogEntry
from abac_console.audit.store import DecisionLogStore
from abac_console.pdp import Decision


def write_log(path: Path, entries: list[DecisionLogEntry], extra_lines: list[str] | None = None) -> None:
    """Write entries oldest first, the way DecisionLogger appends them."""
    lines = [json.dumps({"time": "2024-01-15T10:30:00.000+00:00", **e.to_wire()}) for e in entries]
    lines.extend(extra_lines or [])
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def applied(policy_id: str, matched: bool, effect: Decision = Decision.DENY, reason: str | None = None):
    return AppliedPolicy(
        policy_id=policy_id,
        policy_name=policy_id.title(),
        effect=effect,
        matched=matched,
        reason=reason,
    )


@pytest.fixture
def log_path(tmp_path: Path) -> Path:
    return tmp_path / "decisions.jsonl"


class TestReadEntries:
    """Tests for reading the JSONL file."""

    def test_missing_file_is_empty(self, log_path: Path):
        assert DecisionLogStore(log_path).read_entries() == []

    def test_empty_file_is_empty(self, log_path: Path):
        log_path.write_text("")

        assert DecisionLogStore(log_path).read_entries() == []

    def test_newest_first(self, log_path: Path, make_entry: Callable[..., DecisionLogEntry]):
        entries = [make_entry() for _ in range(3)]
        write_log(log_path, entries)

        result = DecisionLogStore(log_path).read_entries()

        assert [e.decision_id for e in result] == [e.decision_id for e in reversed(entries)]

    def test_round_trips_every_field(self, log_path: Path, make_entry: Callable[..., DecisionLogEntry]):
        entry = make_entry(
            resource_id="ord-1",
            ip_address="10.0.0.1",
            method="GET",
            applied_policies=[applied("BLOCK", True, reason="All conditions matched")],
        )
        write_log(log_path, [entry])

        assert DecisionLogStore(log_path).read_entries() == [entry]

    def test_malformed_lines_skipped(self, log_path: Path, make_entry: Callable[..., DecisionLogEntry]):
        entry = make_entry()
        write_log(log_path, [entry], extra_lines=["not json", '{"decisionId": "incomplete"}', ""])

        assert DecisionLogStore(log_path).read_entries() == [entry]

    def test_read_bounded_to_tail(self, log_path: Path, make_entry: Callable[..., DecisionLogEntry]):
        # Arrange
        entries = [make_entry() for _ in range(20)]
        write_log(log_path, entries)
        line_size = len(log_path.read_text().splitlines()[0]) + 1

        # Act
        result = DecisionLogStore(log_path, max_read_bytes=line_size * 3 + 5).read_entries()

        # Assert
        assert [e.decision_id for e in result] == [e.decision_id for e in reversed(entries[-3:])]


class TestQuery:
    """Tests for filtering and pagination."""

    def test_filters(self, log_path: Path, make_entry: Callable[..., DecisionLogEntry]):
        write_log(
            log_path,
            [
                make_entry(decision=Decision.DENY, action="delete"),
                make_entry(decision=Decision.ALLOW, action="delete"),
                make_entry(decision=Decision.DENY, action="read"),
            ],
        )

        result = DecisionLogStore(log_path).query(AuditLogFilters(decision=Decision.DENY, action="delete"))

        assert [e.decision_id for e in result] == ["dec-000"]

    def test_pages(self, log_path: Path, make_entry: Callable[..., DecisionLogEntry]):
        # Arrange
        write_log(log_path, [make_entry() for _ in range(5)])
        store = DecisionLogStore(log_path)

        # Act
        page3 = store.fetch_audit_logs(AuditLogQuery(page=3, limit=2))

        # Assert
        assert (page3.total, page3.pages) == (5, 3)
        assert [e.decision_id for e in page3.logs] == ["dec-000"]

    def test_page_past_end_is_empty(self, log_path: Path, make_entry: Callable[..., DecisionLogEntry]):
        write_log(log_path, [make_entry()])

        page = DecisionLogStore(log_path).fetch_audit_logs(AuditLogQuery(page=4, limit=2))

        assert page.logs == []
        assert page.pages == 1

    def test_find(self, log_path: Path, make_entry: Callable[..., DecisionLogEntry]):
        entries = [make_entry() for _ in range(3)]
        write_log(log_path, entries)
        store = DecisionLogStore(log_path)

        assert store.find("dec-001") == entries[1]
        assert store.find("missing") is None


class TestStatistics:
    """Tests for statistics over the full filtered set."""

    def test_statistics(self, log_path: Path, make_entry: Callable[..., DecisionLogEntry]):
        # Arrange
        write_log(
            log_path,
            [
                make_entry(
                    decision=Decision.DENY,
                    evaluation_time=2.0,
                    applied_policies=[applied("BLOCK", True, reason="All conditions matched")],
                ),
                make_entry(
                    decision=Decision.ALLOW,
                    evaluation_time=1.0,
                    applied_policies=[
                        applied("BLOCK", False, reason="resource condition 1 not met"),
                        applied("STAFF", True, Decision.ALLOW),
                    ],
                ),
                make_entry(
                    decision=Decision.DENY,
                    evaluation_time=4.0,
                    action="delete",
                    applied_policies=[applied("BLOCK", True, reason="All conditions matched")],
                ),
            ],
        )

        # Act
        stats = DecisionLogStore(log_path).statistics(top=5, recent_denials=1)

        # Assert
        assert stats.total == 3
        overview = {row.decision: (row.count, row.avg_evaluation_time) for row in stats.overview}
        assert overview == {Decision.ALLOW: (1, 1.0), Decision.DENY: (2, 3.0)}
        assert [(p.policy_id, p.evaluation_count, p.match_count) for p in stats.top_policies] == [
            ("BLOCK", 3, 2),
            ("STAFF", 1, 1),
        ]
        assert stats.top_policies[0].success_rate == 66.7
        assert len(stats.recent_denials) == 1
        assert stats.recent_denials[0].action == "delete"
        assert stats.recent_denials[0].reasons == ["Block: All conditions matched"]

    def test_statistics_respect_filters_not_pages(
        self, log_path: Path, make_entry: Callable[..., DecisionLogEntry]
    ):
        entries = [make_entry(resource_type="order") for _ in range(60)]
        write_log(log_path, [*entries, make_entry(resource_type="invoice")])

        stats = DecisionLogStore(log_path).statistics(AuditLogFilters(resource_type="order"))

        assert stats.total == 60

    def test_empty_log(self, log_path: Path):
        stats = DecisionLogStore(log_path).statistics()

        assert stats.total == 0
        assert stats.overview == []
        assert stats.top_policies == []
