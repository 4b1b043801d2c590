import click

from branchyard.cli.core import record_state_label, require_registry
from branchyard.cli.json_output import emit_json, error_boundary, format_option
from branchyard.cli.output import user_output
from branchyard.cli.rendering import render_worktree_table
from branchyard.core.context import BranchyardContext


@click.command("list")
@format_option
@click.pass_obj
@error_boundary
def list_wt(ctx: BranchyardContext, output_format: str) -> None:
    """List worktrees, flagging entries whose directory has vanished."""
    registry = require_registry(ctx)
    records = list(registry.worktrees.list_worktrees())

    if output_format == "json":
        emit_json(
            {
                "worktrees": [
                    {**record.to_json_dict(), "status": record_state_label(record)}
                    for record in records
                ]
            }
        )
        return

    if not records:
        user_output("No worktrees. Create one with 'branchyard wt create BRANCH'.")
        return

    render_worktree_table(records)
    orphaned = sum(1 for record in records if record.orphaned)
    if orphaned:
        user_output(
            click.style(f"{orphaned} orphaned entr{'y' if orphaned == 1 else 'ies'}", fg="yellow")
            + "; run 'branchyard wt prune' to drop them."
        )
