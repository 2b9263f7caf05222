"""Unit tests for logs commands.

Tests CLI behavior using Click's CliRunner for isolated, fast testing.
Tests use the AAA pattern (Arrange-Act-Assert) for clarity.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from abac_console.audit.models import AppliedPolicy, DecisionLogEntry
from abac_console.cli import cli
from abac_console.config import AppConfig, get_decisions_log_path
from abac_console.exceptions import APIError
from abac_console.pdp import Decision


@pytest.fixture
def decision_log(app_config: AppConfig, make_entry: Callable[..., DecisionLogEntry]) -> Path:
    """Three local entries, written oldest first: dec-000, dec-001 (DENY), dec-002."""
    entries = [
        make_entry(),
        make_entry(
            decision=Decision.DENY,
            action="delete",
            resource_type="invoice",
            applied_policies=[
                AppliedPolicy(
                    policy_id="BLOCK_DELETES",
                    policy_name="Block Deletes",
                    effect=Decision.DENY,
                    matched=True,
                    reason="All conditions matched",
                )
            ],
        ),
        make_entry(),
    ]
    path = get_decisions_log_path(app_config)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(json.dumps(e.to_wire()) for e in entries) + "\n", encoding="utf-8")
    return path


class TestLogsShow:
    """Tests for logs show."""

    def test_newest_first(self, runner: CliRunner, decision_log: Path):
        result = runner.invoke(cli, ["logs", "show", "--local"])

        assert result.exit_code == 0, result.output
        assert result.output.index("dec-002") < result.output.index("dec-001") < result.output.index("dec-000")
        assert "Page 1 of 1 (3 entries)" in result.output
        assert "Next:" not in result.output

    def test_pagination(self, runner: CliRunner, decision_log: Path):
        result = runner.invoke(cli, ["logs", "show", "--local", "--limit", "2"])

        assert "dec-000" not in result.output
        assert "Page 1 of 2 (3 entries)" in result.output
        assert "Next: abac-console logs show --page 2" in result.output

    def test_second_page(self, runner: CliRunner, decision_log: Path):
        result = runner.invoke(cli, ["logs", "show", "--local", "--limit", "2", "--page", "2"])

        assert "dec-000" in result.output
        assert "dec-002" not in result.output

    def test_decision_filter(self, runner: CliRunner, decision_log: Path):
        result = runner.invoke(cli, ["logs", "show", "--local", "--decision", "deny"])

        assert "dec-001" in result.output
        assert "dec-000" not in result.output
        assert "(1 entries)" in result.output

    def test_search_narrows_loaded_page(self, runner: CliRunner, decision_log: Path):
        result = runner.invoke(cli, ["logs", "show", "--local", "--search", "block"])

        assert "dec-001" in result.output
        assert "dec-002" not in result.output
        assert "1 of 3 entries on this page match 'block'" in result.output

    def test_json(self, runner: CliRunner, decision_log: Path):
        result = runner.invoke(cli, ["logs", "show", "--local", "--json"])

        assert [e["decisionId"] for e in json.loads(result.output)] == ["dec-002", "dec-001", "dec-000"]

    def test_empty_log(self, runner: CliRunner, app_config: AppConfig):
        result = runner.invoke(cli, ["logs", "show", "--local"])

        assert result.exit_code == 0
        assert "No entries." in result.output

    def test_api_failure(self, runner: CliRunner, app_config: AppConfig):
        with patch("abac_console.cli.commands.logs.get_client") as get_client:
            get_client.return_value.fetch_audit_logs.side_effect = APIError("Internal error", 500)

            result = runner.invoke(cli, ["logs", "show"])

        assert result.exit_code == 1
        assert "API error (500): Internal error" in result.output

    def test_requires_config(self, runner: CliRunner):
        result = runner.invoke(cli, ["logs", "show", "--local"])

        assert result.exit_code == 1
        assert "abac-console init" in result.output


class TestLogsInspect:
    """Tests for logs inspect."""

    def test_shows_trace(self, runner: CliRunner, decision_log: Path):
        result = runner.invoke(cli, ["logs", "inspect", "dec-001", "--local"])

        assert result.exit_code == 0
        assert "Decision ID:      dec-001" in result.output
        assert "1. Block Deletes [BLOCK_DELETES]" in result.output
        assert "All conditions matched" in result.output

    def test_default_decision_entry(self, runner: CliRunner, decision_log: Path):
        result = runner.invoke(cli, ["logs", "inspect", "dec-000", "--local"])

        assert "(none - default decision)" in result.output

    def test_not_found(self, runner: CliRunner, decision_log: Path):
        result = runner.invoke(cli, ["logs", "inspect", "missing", "--local"])

        assert result.exit_code == 1
        assert "Decision missing not found" in result.output


class TestLogsExport:
    """Tests for logs export."""

    def test_writes_csv(self, runner: CliRunner, decision_log: Path, tmp_path: Path):
        # Arrange
        out = tmp_path / "exports"
        out.mkdir()

        # Act
        result = runner.invoke(cli, ["logs", "export", "--local", "--output-dir", str(out)])

        # Assert
        assert result.exit_code == 0, result.output
        files = list(out.glob("abac-audit-logs-*.csv"))
        assert len(files) == 1
        assert f"Exported to {files[0]}" in result.output
        content = files[0].read_text(encoding="utf-8")
        assert content.count("\n") == 3
        assert not content.endswith("\n")

    def test_respects_filters(self, runner: CliRunner, decision_log: Path, tmp_path: Path):
        runner.invoke(cli, ["logs", "export", "--local", "--action", "delete", "--output-dir", str(tmp_path)])

        content = next(tmp_path.glob("abac-audit-logs-*.csv")).read_text(encoding="utf-8")
        assert content.count("\n") == 1
        assert '"dec-001"' in content


class TestLogsStats:
    """Tests for logs stats."""

    def test_summary(self, runner: CliRunner, decision_log: Path):
        result = runner.invoke(cli, ["logs", "stats", "--local"])

        assert result.exit_code == 0
        assert "Decisions (3)" in result.output
        assert "BLOCK_DELETES" in result.output
        assert "delete invoice: Block Deletes: All conditions matched" in result.output

    def test_json_with_filter(self, runner: CliRunner, decision_log: Path):
        result = runner.invoke(cli, ["logs", "stats", "--local", "--json", "--decision", "ALLOW"])

        data = json.loads(result.output)
        assert data["total"] == 2
        assert data["recentDenials"] == []
