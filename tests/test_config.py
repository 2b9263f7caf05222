"""Tests for application configuration."""

from __future__ import annotations

import json
import os
import stat
import sys
from pathlib import Path

import pytest
from pydantic import ValidationError

from abac_console.config import (
    APIConfig,
    AppConfig,
    LoggingConfig,
    ViewerConfig,
    get_config_path,
    get_decisions_log_path,
    get_policy_path,
)


class TestAppConfig:
    """Tests for AppConfig defaults, validation and persistence."""

    def test_defaults(self):
        config = AppConfig(logging=LoggingConfig(log_dir="/var/log/abac"))

        assert config.api.base_url == "http://localhost:5000/api/superadmin"
        assert config.viewer.page_size == 50
        assert config.viewer.export_limit == 1000
        assert config.engine.default_decision == "DENY"
        assert config.logging.log_level == "INFO"

    @pytest.mark.parametrize("timeout", [0, 301])
    def test_timeout_range(self, timeout: int):
        with pytest.raises(ValidationError):
            APIConfig(timeout_seconds=timeout)

    @pytest.mark.parametrize("page_size", [0, 1001])
    def test_page_size_range(self, page_size: int):
        with pytest.raises(ValidationError):
            ViewerConfig(page_size=page_size)

    def test_engine_default_is_always_deny(self):
        with pytest.raises(ValidationError):
            AppConfig.model_validate({"logging": {"log_dir": "/x"}, "engine": {"default_decision": "ALLOW"}})

    def test_save_and_load(self, tmp_path: Path):
        # Arrange
        path = tmp_path / "cfg" / "abac_console_config.json"
        config = AppConfig(
            api=APIConfig(base_url="https://admin.example.com/api/superadmin", timeout_seconds=10),
            logging=LoggingConfig(log_dir=str(tmp_path / "logs"), log_level="DEBUG"),
        )

        # Act
        config.save_to_file(path)
        loaded = AppConfig.load_from_files(path)

        # Assert
        assert loaded == config

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_saved_with_secure_permissions(self, tmp_path: Path):
        path = tmp_path / "cfg" / "config.json"

        AppConfig(logging=LoggingConfig(log_dir="/x")).save_to_file(path)

        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600
        assert stat.S_IMODE(os.stat(path.parent).st_mode) == 0o700

    def test_load_missing(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError, match="abac-console init"):
            AppConfig.load_from_files(tmp_path / "nope.json")

    def test_load_reports_every_error(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"api": {"timeout_seconds": 0}, "viewer": {"page_size": "x"}}))

        with pytest.raises(ValueError) as exc_info:
            AppConfig.load_from_files(path)

        message = str(exc_info.value)
        assert "  - api.timeout_seconds:" in message
        assert "  - viewer.page_size:" in message
        assert "  - logging:" in message


class TestPaths:
    """Tests for well-known file locations."""

    def test_app_dir_files(self, isolated_app_dir: Path):
        assert get_config_path() == isolated_app_dir / "abac_console_config.json"
        assert get_policy_path() == isolated_app_dir / "policy.json"

    def test_decisions_log_under_log_dir(self, tmp_path: Path):
        config = AppConfig(logging=LoggingConfig(log_dir=str(tmp_path)))

        assert get_decisions_log_path(config) == tmp_path / "abac_console_logs" / "audit" / "decisions.jsonl"
