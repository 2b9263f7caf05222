"""Shared plumbing for CLI commands.

- load_config(): AppConfig from the OS config location, as a click error
  when missing or invalid
- get_client(): ABACClient wired to the config and default credentials
- cli_errors(): turns ABACConsoleError into click.ClickException so every
  failure exits 1 with a readable message and no traceback
"""

from __future__ import annotations

__all__ = [
    "cli_errors",
    "get_client",
    "load_config",
]

from collections.abc import Iterator
from contextlib import contextmanager

import click

from abac_console.client import ABACClient
from abac_console.config import AppConfig, get_config_path
from abac_console.exceptions import ABACConsoleError, PolicyValidationError
from abac_console.utils.logging import configure_system_logger


def load_config() -> AppConfig:
    """Load configuration from the default path.

    Also attaches the system log file handler under the configured log_dir.

    Raises:
        click.ClickException: If config not found or invalid.
    """
    config_path = get_config_path()

    if not config_path.exists():
        raise click.ClickException(
            f"Configuration not found at {config_path}\n" "Run 'abac-console init' to create configuration."
        )

    try:
        config = AppConfig.load_from_files(config_path)
    except (FileNotFoundError, ValueError) as e:
        raise click.ClickException(f"Failed to load configuration: {e}") from e

    configure_system_logger(config.logging.log_dir, config.logging.log_level)
    return config


def get_client(config: AppConfig) -> ABACClient:
    """ABACClient for the configured API using the default credential chain."""
    return ABACClient.from_config(config)


@contextmanager
def cli_errors() -> Iterator[None]:
    """Convert abac-console errors into click errors (exit code 1)."""
    try:
        yield
    except PolicyValidationError as e:
        lines = [f"  - {field}: {msg}" for field, msg in e.errors.items()]
        raise click.ClickException("Policy is invalid:\n" + "\n".join(lines)) from e
    except ABACConsoleError as e:
        raise click.ClickException(str(e)) from e
