import logging
import os
from pathlib import Path

import click

from branchyard.cli.commands.cache import cache_group
from branchyard.cli.commands.handoff import handoff_group
from branchyard.cli.commands.init_cmd import init_cmd
from branchyard.cli.commands.pr import pr_group
from branchyard.cli.commands.remote import remote_group
from branchyard.cli.commands.retarget import retarget_group
from branchyard.cli.commands.status import status_cmd
from branchyard.cli.commands.wt import wt_group
from branchyard.cli.json_output import emit_error, exit_code_for
from branchyard.core.context import create_context
from branchyard.core.errors import WorkspaceError

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])  # terse help flags

DEBUG_ENV_VAR = "BRANCHYARD_DEBUG"


def configure_logging(debug: bool) -> None:
    if debug or os.environ.get(DEBUG_ENV_VAR):
        logging.basicConfig(
            level=logging.DEBUG,
            format="[DEBUG %(name)s:%(lineno)d] %(message)s",
        )


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="branchyard")
@click.option("--debug", is_flag=True, help="Log every mutating step to stderr.")
@click.option("--dry-run", is_flag=True, help="Print mutating git and GitHub commands instead.")
@click.option(
    "--workspace",
    "workspace_root",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Workspace root (default: enclosing workspace, then the global default).",
)
@click.pass_context
def cli(ctx: click.Context, debug: bool, dry_run: bool, workspace_root: Path | None) -> None:
    """Isolated worktrees over one shared repository and build cache."""
    configure_logging(debug)
    # Only create context if not already provided (e.g., by tests)
    if ctx.obj is None:
        try:
            ctx.obj = create_context(
                dry_run=dry_run,
                workspace_root=workspace_root,
                open_registry=ctx.invoked_subcommand != "init",
            )
        except WorkspaceError as e:
            emit_error(e.kind, e.message, exit_code_for(e), as_json=False)


cli.add_command(cache_group)
cli.add_command(handoff_group)
cli.add_command(init_cmd)
cli.add_command(pr_group)
cli.add_command(remote_group)
cli.add_command(retarget_group)
cli.add_command(status_cmd)
cli.add_command(wt_group)


def main() -> None:
    """CLI entry point used by the `branchyard` console script."""
    cli()
