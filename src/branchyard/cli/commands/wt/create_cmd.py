import click

from branchyard.cli.core import require_registry
from branchyard.cli.json_output import emit_json, error_boundary, format_option
from branchyard.cli.output import machine_output, user_output
from branchyard.core.context import BranchyardContext


@click.command("create")
@click.argument("branch")
@click.option(
    "--base",
    "base",
    default=None,
    help="Base reference for a new branch (default: the trunk branch).",
)
@format_option
@click.pass_obj
@error_boundary
def create_wt(
    ctx: BranchyardContext, branch: str, base: str | None, output_format: str
) -> None:
    """Create a worktree for BRANCH bound to the shared build cache.

    An existing local branch is checked out as-is; otherwise BRANCH is
    created at --base. Prints the worktree path on stdout.
    """
    registry = require_registry(ctx)
    base_ref = base if base is not None else registry.trunk_branch()
    record = registry.worktrees.create(branch, base_ref)

    if output_format == "json":
        emit_json(record.to_json_dict())
        return

    user_output(
        f"Created worktree {click.style(branch, fg='cyan', bold=True)} "
        f"from {click.style(base_ref, fg='yellow')}"
    )
    user_output(f"  build cache: {registry.cache.cache_dir}")
    machine_output(str(record.path))
