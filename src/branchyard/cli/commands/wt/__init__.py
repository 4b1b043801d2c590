"""Worktree management commands."""

import click

from branchyard.cli.commands.wt.create_cmd import create_wt
from branchyard.cli.commands.wt.list_cmd import list_wt
from branchyard.cli.commands.wt.prune_cmd import prune_wt
from branchyard.cli.commands.wt.remove_cmd import remove_wt
from branchyard.cli.commands.wt.show_cmd import show_wt


@click.group("wt")
def wt_group() -> None:
    """Manage worktrees of the shared repository."""
    pass


# Register subcommands
wt_group.add_command(create_wt)
wt_group.add_command(list_wt)
wt_group.add_command(prune_wt)
wt_group.add_command(remove_wt)
wt_group.add_command(show_wt)
