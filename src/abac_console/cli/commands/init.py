"""Init command for abac-console CLI.

Handles interactive and non-interactive configuration initialization.
"""

from typing import Literal, cast

import click

from abac_console.config import APIConfig, AppConfig, LoggingConfig, ViewerConfig, get_config_path, get_policy_path
from abac_console.constants import DEFAULT_API_BASE_URL, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, RECOMMENDED_LOG_DIR
from abac_console.stores import FilePolicyStore
from abac_console.stores.policy_file import PolicyFile

from ..prompts import prompt_optional, prompt_with_retry


def _save_config(api_url: str, log_dir: str, log_level: str, page_size: int) -> None:
    """Create and save the configuration and an empty local policy store.

    Raises:
        OSError: If files cannot be saved.
    """
    config = AppConfig(
        api=APIConfig(base_url=api_url.rstrip("/")),
        logging=LoggingConfig(
            log_dir=log_dir,
            log_level=cast(Literal["DEBUG", "INFO"], log_level.upper()),
        ),
        viewer=ViewerConfig(page_size=page_size),
    )
    config_path = get_config_path()
    config.save_to_file(config_path)
    click.echo(f"\nConfiguration saved to {config_path}")

    store = FilePolicyStore(get_policy_path())
    if not store.exists():
        store.save(PolicyFile())
        click.echo(f"Local policy store created at {store.path}")
    else:
        click.echo(f"Local policy store kept at {store.path}")

    click.echo("\nRun 'abac-console auth login' to store an API token.")


@click.command()
@click.option("--api-url", help=f"Base URL of the admin API (default: {DEFAULT_API_BASE_URL})")
@click.option("--log-dir", help=f"Base directory for logs (e.g. {RECOMMENDED_LOG_DIR})")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO"], case_sensitive=False),
    default="INFO",
    show_default=True,
    help="System log level",
)
@click.option(
    "--page-size",
    type=click.IntRange(1, MAX_PAGE_SIZE),
    default=DEFAULT_PAGE_SIZE,
    show_default=True,
    help="Audit log entries per page",
)
@click.option("--non-interactive", is_flag=True, help="Don't prompt; require flags")
@click.option("--force", is_flag=True, help="Overwrite existing configuration without asking")
def init(
    api_url: str | None,
    log_dir: str | None,
    log_level: str,
    page_size: int,
    non_interactive: bool,
    force: bool,
) -> None:
    """Initialize abac-console configuration.

    Creates the config file and an empty local policy store in the OS
    config directory.
    """
    config_path = get_config_path()
    if config_path.exists() and not force:
        if non_interactive:
            raise click.ClickException(f"Configuration already exists at {config_path} (use --force to overwrite)")
        if not click.confirm(f"Configuration already exists at {config_path}. Overwrite?", default=False):
            click.echo("Aborted.")
            return

    if non_interactive:
        if not log_dir:
            raise click.ClickException("--log-dir is required with --non-interactive")
        api_url = api_url or DEFAULT_API_BASE_URL
    else:
        click.echo("\nWelcome to abac-console!\n")
        click.echo(f"Config will be saved to: {config_path}\n")
        api_url = api_url or prompt_optional("Admin API base URL", default=DEFAULT_API_BASE_URL)
        log_dir = log_dir or prompt_with_retry("Log directory", default=RECOMMENDED_LOG_DIR)

    try:
        _save_config(api_url, log_dir, log_level, page_size)
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Failed to save configuration: {e}") from e
