"""Interactive prompt helpers for CLI commands.

Provides reusable prompt utilities for gathering user input.
"""

import click


def prompt_with_retry(prompt_text: str, default: str = "") -> str:
    """Prompt for a required value, retrying if empty.

    Args:
        prompt_text: Text to show in prompt.
        default: Suggested value shown in the prompt.

    Returns:
        Non-empty string value from user.
    """
    while True:
        value: str = click.prompt(prompt_text, type=str, default=default, show_default=bool(default))
        if value.strip():
            return value.strip()
        click.echo("  This field is required.")


def prompt_optional(prompt_text: str, default: str = "") -> str:
    """Prompt for an optional value with default.

    Args:
        prompt_text: Text to show in prompt.
        default: Default value if user presses enter.

    Returns:
        String value from user or default.
    """
    value: str = click.prompt(prompt_text, type=str, default=default, show_default=True)
    return value.strip()
