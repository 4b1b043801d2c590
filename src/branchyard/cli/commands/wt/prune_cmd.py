import click

from branchyard.cli.core import require_registry
from branchyard.cli.json_output import emit_json, error_boundary, format_option
from branchyard.cli.output import user_output
from branchyard.core.context import BranchyardContext


@click.command("prune")
@click.option(
    "--adopt",
    is_flag=True,
    help="Also record worktrees found on disk that have no registry entry.",
)
@format_option
@click.pass_obj
@error_boundary
def prune_wt(ctx: BranchyardContext, adopt: bool, output_format: str) -> None:
    """Drop registry entries whose worktree directory has vanished."""
    registry = require_registry(ctx)
    removed = registry.worktrees.prune()
    adopted = registry.reconcile() if adopt else 0

    if output_format == "json":
        emit_json({"pruned": removed, "adopted": adopted})
        return

    user_output(f"Pruned {removed} orphaned entr{'y' if removed == 1 else 'ies'}")
    if adopt:
        user_output(f"Adopted {adopted} untracked worktree{'' if adopted == 1 else 's'}")
