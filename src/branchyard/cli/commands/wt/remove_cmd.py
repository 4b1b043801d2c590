import click

from branchyard.cli.core import require_registry
from branchyard.cli.json_output import emit_json, error_boundary, format_option
from branchyard.cli.output import user_output
from branchyard.core.context import BranchyardContext


@click.command("remove")
@click.argument("branch")
@click.option("-f", "--force", is_flag=True, help="Remove even with uncommitted changes.")
@click.option("--delete-branch", is_flag=True, help="Also delete the local branch.")
@click.option(
    "--strict",
    is_flag=True,
    help="Fail with NotFound instead of succeeding when nothing is there.",
)
@format_option
@click.pass_obj
@error_boundary
def remove_wt(
    ctx: BranchyardContext,
    branch: str,
    force: bool,
    delete_branch: bool,
    strict: bool,
    output_format: str,
) -> None:
    """Detach BRANCH's worktree and release the branch name.

    Removing a branch that has no worktree succeeds as a no-op.
    """
    registry = require_registry(ctx)
    removed = registry.worktrees.remove(
        branch, force=force, delete_branch=delete_branch, missing_ok=not strict
    )

    if output_format == "json":
        emit_json({"branch": branch, "removed": removed})
        return

    if removed:
        user_output(f"Removed worktree {click.style(branch, fg='cyan', bold=True)}")
    else:
        user_output(f"No worktree for {click.style(branch, fg='cyan')}; nothing to remove")
