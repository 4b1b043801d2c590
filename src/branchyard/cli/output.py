"""Output utilities for CLI commands with clear intent.

user_output() is for humans and goes to stderr; machine_output() is for
scripts and shell integration and goes to stdout.
"""

from typing import Any

import click


def user_output(message: Any = "", nl: bool = True) -> None:
    """Print a human-facing message to stderr."""
    click.echo(message, err=True, nl=nl)


def machine_output(message: Any = "", nl: bool = True) -> None:
    """Print machine-readable output (paths, JSON) to stdout."""
    click.echo(message, nl=nl)
