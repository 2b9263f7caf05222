"""Application configuration for abac-console.

Defines configuration models for the API connection, logging, the audit
log viewer and the local evaluation engine. User creates config via
`abac-console init`. Config is stored at the OS-appropriate location
(platformdirs), log_dir is user-specified.

Example usage:
    # Load from config file
    config = AppConfig.load_from_files(get_config_path())

    # Save new configuration
    config.save_to_file(get_config_path())
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from abac_console.constants import (
    CONFIG_FILENAME,
    DECISIONS_LOG_RELPATH,
    DEFAULT_API_BASE_URL,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_PAGE_SIZE,
    EXPORT_LIMIT,
    LOG_SUBDIR,
    MAX_HTTP_TIMEOUT_SECONDS,
    MAX_PAGE_SIZE,
    MIN_HTTP_TIMEOUT_SECONDS,
    POLICY_FILENAME,
)
from abac_console.utils.file_helpers import (
    get_app_dir,
    load_validated_json,
    require_file_exists,
    set_secure_permissions,
)

__all__ = [
    "APIConfig",
    "AppConfig",
    "EngineConfig",
    "LoggingConfig",
    "ViewerConfig",
    "get_config_path",
    "get_decisions_log_path",
    "get_policy_path",
]


class APIConfig(BaseModel):
    """Platform API connection settings.

    Attributes:
        base_url: Base URL the /abac/* endpoints are relative to.
        timeout_seconds: Request timeout in seconds (1-300).
    """

    base_url: str = DEFAULT_API_BASE_URL
    timeout_seconds: int = Field(
        default=DEFAULT_HTTP_TIMEOUT_SECONDS,
        ge=MIN_HTTP_TIMEOUT_SECONDS,
        le=MAX_HTTP_TIMEOUT_SECONDS,
    )


class LoggingConfig(BaseModel):
    """Logging configuration settings.

    The log_dir specifies a base directory. Within it, logs are stored
    in an abac_console_logs/ subdirectory:
        <log_dir>/
        └── abac_console_logs/
            ├── system/
            │   └── system.jsonl
            └── audit/              # Always enabled (append-only)
                └── decisions.jsonl

    Attributes:
        log_dir: Base directory for logs.
        log_level: DEBUG or INFO for the system log.
    """

    log_dir: str
    log_level: Literal["DEBUG", "INFO"] = "INFO"


class ViewerConfig(BaseModel):
    """Audit log viewer settings.

    Attributes:
        page_size: Entries per page (1-1000).
        export_limit: Maximum entries fetched for a CSV export.
    """

    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    export_limit: int = Field(default=EXPORT_LIMIT, ge=1, le=MAX_PAGE_SIZE)


class EngineConfig(BaseModel):
    """Local evaluation engine settings.

    Attributes:
        default_decision: Decision when no policy matches (always DENY).
    """

    default_decision: Literal["DENY"] = "DENY"


class AppConfig(BaseModel):
    """Main application configuration for abac-console.

    Attributes:
        api: Platform API connection.
        logging: Log locations and level.
        viewer: Audit log viewer settings.
        engine: Local evaluation engine settings.
    """

    api: APIConfig = Field(default_factory=APIConfig)
    logging: LoggingConfig
    viewer: ViewerConfig = Field(default_factory=ViewerConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to JSON file.

        Creates parent directories if they don't exist.
        Sets secure permissions (0o700 directory, 0o600 file).

        Args:
            config_path: Path where abac_console_config.json should be saved.
        """
        config_path.parent.mkdir(parents=True, exist_ok=True)
        set_secure_permissions(config_path.parent, is_directory=True)

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(self.model_dump(), f, indent=2)

        set_secure_permissions(config_path)

    @classmethod
    def load_from_files(cls, config_path: Path) -> "AppConfig":
        """Load configuration from JSON file.

        Args:
            config_path: Path to the config file.

        Returns:
            AppConfig instance with loaded configuration.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            ValueError: If config file is invalid or missing required fields.
        """
        require_file_exists(
            config_path,
            file_type="configuration",
            recovery_hint="Run 'abac-console init' to create configuration.",
        )
        return load_validated_json(
            config_path,
            cls,
            file_type="config",
            recovery_hint="Run 'abac-console init' to reconfigure.",
        )


def get_config_path() -> Path:
    """Path to abac_console_config.json in the OS config directory."""
    return get_app_dir() / CONFIG_FILENAME


def get_policy_path() -> Path:
    """Path to the local policy store (policy.json) in the OS config directory."""
    return get_app_dir() / POLICY_FILENAME


def get_decisions_log_path(config: AppConfig) -> Path:
    """Path to audit/decisions.jsonl under the configured log_dir."""
    return Path(config.logging.log_dir).expanduser() / LOG_SUBDIR / DECISIONS_LOG_RELPATH
