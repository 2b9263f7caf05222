"""Authentication commands for abac-console CLI.

Commands:
    auth login  - Store an API bearer token
    auth logout - Clear stored credentials
    auth status - Show which credential source is active
"""

import click

from abac_console.client import EnvCredentialProvider, FileCredentialProvider
from abac_console.constants import ENV_TOKEN


@click.group()
def auth() -> None:
    """Authentication commands."""
    pass


@auth.command()
@click.option("--token", help="Bearer token (prompted for when omitted)")
def login(token: str | None) -> None:
    """Store a bearer token for the admin API.

    The token is written to credentials.json in the config directory with
    0600 permissions. The ABAC_CONSOLE_TOKEN environment variable, when set,
    takes precedence over the stored token.
    """
    if token is None:
        token = click.prompt("API token", hide_input=True)
    token = token.strip()
    if not token:
        raise click.ClickException("Token must not be empty")

    provider = FileCredentialProvider()
    try:
        provider.save_token(token)
    except OSError as e:
        raise click.ClickException(f"Failed to store token: {e}") from e

    click.echo(click.style("Token stored.", fg="green"))
    click.echo(f"  Location: {provider.path}")


@auth.command()
def logout() -> None:
    """Remove the stored bearer token."""
    if FileCredentialProvider().clear():
        click.echo("Stored token removed.")
    else:
        click.echo("No stored token.")
    if EnvCredentialProvider().get_token():
        click.echo(f"Note: {ENV_TOKEN} is still set in the environment.")


@auth.command()
def status() -> None:
    """Show which credential source will be used."""
    if EnvCredentialProvider().get_token():
        click.echo(f"Using token from {click.style(ENV_TOKEN, bold=True)} environment variable.")
        return

    provider = FileCredentialProvider()
    if provider.get_token():
        click.echo(f"Using stored token from {provider.path}")
    else:
        click.echo(click.style("Not authenticated.", fg="yellow"))
        click.echo("Run 'abac-console auth login' to store a token.")
