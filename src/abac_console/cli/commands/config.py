"""Configuration commands for abac-console CLI.

Commands:
    config show - Display current configuration
    config path - Show config file path
"""

import json

import click

from abac_console.config import get_config_path, get_decisions_log_path, get_policy_path

from ..api_client import load_config


@click.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command("show")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def show(as_json: bool) -> None:
    """Display the current configuration."""
    app_config = load_config()

    if as_json:
        click.echo(json.dumps(app_config.model_dump(), indent=2))
        return

    click.echo(click.style("API", bold=True))
    click.echo(f"  base_url:        {app_config.api.base_url}")
    click.echo(f"  timeout_seconds: {app_config.api.timeout_seconds}")
    click.echo(click.style("Logging", bold=True))
    click.echo(f"  log_dir:         {app_config.logging.log_dir}")
    click.echo(f"  log_level:       {app_config.logging.log_level}")
    click.echo(f"  decisions log:   {get_decisions_log_path(app_config)}")
    click.echo(click.style("Viewer", bold=True))
    click.echo(f"  page_size:       {app_config.viewer.page_size}")
    click.echo(f"  export_limit:    {app_config.viewer.export_limit}")
    click.echo(click.style("Engine", bold=True))
    click.echo(f"  default:         {app_config.engine.default_decision}")


@config.command("path")
def path() -> None:
    """Show config and local policy file paths."""
    click.echo(f"Config: {get_config_path()}")
    click.echo(f"Policy: {get_policy_path()}")
