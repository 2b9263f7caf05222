"""Main CLI entry point for abac-console.

Defines the CLI group and registers all subcommands.

Commands:
    init    - Initialize configuration (interactive or with flags)
    auth    - API token commands (login, logout, status)
    config  - Configuration commands (show, path)
    policy  - Author, list, toggle, delete, validate and test policies
    logs    - Browse, inspect, export and summarize decision logs

Usage:
    abac-console -h, --help      Show help message
    abac-console -v, --version   Show version

Subcommand help:
    abac-console COMMAND -h      Show help for a specific command
"""

import sys

import click

from abac_console import __version__

from .commands.auth import auth
from .commands.config import config
from .commands.init import init
from .commands.logs import logs
from .commands.policy import policy


class ReorderedGroup(click.Group):
    """Custom group that shows commands before custom help text."""

    def format_epilog(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        """Add extra help after commands section."""
        formatter.write(
            """
Quick Start:
  abac-console init                         Interactive setup wizard
  abac-console auth login                   Store an API token
  abac-console logs show --decision DENY    Recent denials

Authoring:
  abac-console policy create \\
    --name "Block Cross-Tenant Reads" \\
    --description "Deny reads across tenants" \\
    --policy-id "block cross tenant" \\
    --category TENANT_ISOLATION --priority 900 \\
    --subject "role:not_equals:superadmin" \\
    --resource 'tenant_id:not_equals:$subject.tenant_id'

Local mode (--local):
  Policies live in the local policy file ('policy path') and decisions
  from 'policy test --local' go to the local decision log, so the whole
  author/test/review loop works without the platform API.

Environment:
  ABAC_CONSOLE_API_URL    Overrides api.base_url
  ABAC_CONSOLE_TOKEN      Bearer token (takes precedence over 'auth login')
"""
        )


@click.group(
    cls=ReorderedGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option("--version", "-v", is_flag=True, help="Show version")
@click.pass_context
def cli(ctx: click.Context, version: bool) -> None:
    """abac-console: ABAC policy authoring and decision audit console."""
    if version:
        click.echo(f"abac-console {__version__}")
        sys.exit(0)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# Register commands
cli.add_command(init)
cli.add_command(auth)
cli.add_command(config)
cli.add_command(policy)
cli.add_command(logs)


def main() -> None:
    """CLI entry point."""
    cli()
