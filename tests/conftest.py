"""Shared fixtures for abac-console tests.

Every test runs with the config directory redirected to tmp_path and the
ABAC_CONSOLE_* environment variables cleared, so nothing touches the real
user config.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from datetime import datetime, timedelta, timezone
from itertools import count
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from abac_console.audit.models import DecisionLogEntry
from abac_console.config import AppConfig, LoggingConfig, get_config_path
from abac_console.constants import ENV_API_URL, ENV_TOKEN
from abac_console.pdp import Decision, Policy


@pytest.fixture(autouse=True)
def isolated_app_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Redirect the OS config dir and clear environment overrides."""
    app_dir = tmp_path / "app"
    monkeypatch.setattr("abac_console.config.get_app_dir", lambda: app_dir)
    monkeypatch.setattr("abac_console.client.credentials.get_app_dir", lambda: app_dir)
    monkeypatch.delenv(ENV_TOKEN, raising=False)
    monkeypatch.delenv(ENV_API_URL, raising=False)

    yield app_dir

    # Detach file handlers so per-test log files are closed
    for name in list(logging.Logger.manager.loggerDict):
        if name.startswith("abac-console"):
            logger = logging.getLogger(name)
            for handler in list(logger.handlers):
                handler.close()
                logger.removeHandler(handler)


@pytest.fixture
def make_policy() -> Callable[..., Policy]:
    """Factory for valid policies; keyword overrides use Python field names."""

    def _make(policy_id: str = "TEST_POLICY", **overrides: Any) -> Policy:
        data: dict[str, Any] = {
            "policy_id": policy_id,
            "name": policy_id.replace("_", " ").title(),
            "description": "Test policy",
        }
        data.update(overrides)
        return Policy.model_validate(data)

    return _make


@pytest.fixture
def make_entry() -> Callable[..., DecisionLogEntry]:
    """Factory for decision log entries with unique IDs and rising timestamps."""
    counter = count()
    base = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def _make(**overrides: Any) -> DecisionLogEntry:
        n = next(counter)
        data: dict[str, Any] = {
            "decision_id": f"dec-{n:03d}",
            "user_id": f"user-{n}",
            "user_role": "admin",
            "action": "read",
            "resource_type": "order",
            "decision": Decision.ALLOW,
            "evaluation_time": 1.5,
            "created_at": base + timedelta(seconds=n),
        }
        data.update(overrides)
        return DecisionLogEntry.model_validate(data)

    return _make


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI runner for testing."""
    return CliRunner()


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    """Saved configuration with logs under tmp_path."""
    config = AppConfig(logging=LoggingConfig(log_dir=str(tmp_path / "logs")))
    config.save_to_file(get_config_path())
    return config
