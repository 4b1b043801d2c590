"""Helpers shared by CLI commands."""

import click

from branchyard.cli.output import user_output
from branchyard.core.context import BranchyardContext
from branchyard.core.errors import WorkspaceError
from branchyard.core.records import WorktreeRecord
from branchyard.core.registry import WorkspaceRegistry


def require_registry(ctx: BranchyardContext) -> WorkspaceRegistry:
    """Return the open workspace, or exit with a hint to run `branchyard init`."""
    if ctx.registry is None:
        user_output(
            click.style("Error: ", fg="red")
            + "Not inside a branchyard workspace. Run 'branchyard init' or pass --workspace."
        )
        raise SystemExit(1)
    return ctx.registry


def resolve_branch_argument(
    ctx: BranchyardContext, registry: WorkspaceRegistry, branch: str | None
) -> str:
    """Use the given branch, or the branch of the worktree containing the cwd.

    Raises:
        WorkspaceError: If no branch was given and the cwd is not in a managed worktree
    """
    if branch is not None:
        return branch
    cwd = ctx.cwd.resolve()
    for record in registry.worktrees.list_worktrees():
        if cwd.is_relative_to(record.path.resolve()):
            return record.branch
    raise WorkspaceError(f"{cwd} is not inside a managed worktree; pass a branch name")


def record_state_label(record: WorktreeRecord) -> str:
    if record.orphaned:
        return "orphaned"
    if record.adopted:
        return "active (untracked)"
    return record.state.value
