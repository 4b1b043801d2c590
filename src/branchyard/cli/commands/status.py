import click

from branchyard.cli.core import require_registry
from branchyard.cli.json_output import emit_json, error_boundary, format_option
from branchyard.cli.output import user_output
from branchyard.cli.rendering import render_worktree_table
from branchyard.core.context import BranchyardContext


@click.command("status")
@format_option
@click.pass_obj
@error_boundary
def status_cmd(ctx: BranchyardContext, output_format: str) -> None:
    """Summarize the workspace: worktrees, retargets, hand-offs and running builds."""
    registry = require_registry(ctx)
    inventory = registry.inventory()

    if output_format == "json":
        emit_json(
            {
                "root": inventory.root,
                "repository": inventory.repository,
                "build_cache": inventory.build_cache,
                "trunk_branch": inventory.trunk_branch,
                "worktrees": [record.to_json_dict() for record in inventory.worktrees],
                "orphaned": [record.branch for record in inventory.orphaned],
                "retargets": [op.to_json_dict() for op in inventory.retargets],
                "handoffs": [manifest.branch for manifest in inventory.handoffs],
                "active_builds": inventory.active_builds,
            }
        )
        return

    user_output(f"Workspace:   {click.style(str(inventory.root), fg='green')}")
    user_output(f"Repository:  {inventory.repository} (trunk: {inventory.trunk_branch})")
    user_output(f"Build cache: {inventory.build_cache}")
    if inventory.worktrees:
        render_worktree_table(inventory.worktrees)
    else:
        user_output("No worktrees.")
    for op in inventory.retargets:
        user_output(f"Retarget {op.outcome.value}: {op.branch} -> {op.new_base_ref}")
    for manifest in inventory.handoffs:
        user_output(f"Awaiting signer: {manifest.branch} onto {manifest.new_base_ref}")
    if inventory.active_builds:
        user_output(f"Builds running: {', '.join(inventory.active_builds)}")
