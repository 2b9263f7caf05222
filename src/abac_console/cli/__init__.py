"""Command-line interface for abac-console.

Provides commands for configuring the console, authoring and testing
policies, and browsing or exporting the decision audit trail.
"""

from .main import cli, main

__all__ = ["cli", "main"]
