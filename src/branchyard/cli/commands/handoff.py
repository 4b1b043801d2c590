"""Read-only view of what is waiting for the external signing authority."""

import click

from branchyard.cli.core import require_registry
from branchyard.cli.json_output import emit_json, error_boundary, format_option
from branchyard.cli.output import machine_output, user_output
from branchyard.cli.rendering import render_handoff
from branchyard.core.context import BranchyardContext
from branchyard.core.errors import NotFound


@click.group("handoff")
def handoff_group() -> None:
    """Inspect staged work awaiting the external signer."""
    pass


@handoff_group.command("show")
@click.argument("branch")
@format_option
@click.pass_obj
@error_boundary
def show_cmd(ctx: BranchyardContext, branch: str, output_format: str) -> None:
    """Show BRANCH's hand-off manifest."""
    registry = require_registry(ctx)
    manifest = registry.handoffs.load(branch)
    if manifest is None:
        raise NotFound(branch, what="pending hand-off")

    if output_format == "json":
        emit_json(manifest.to_json_dict())
        return
    render_handoff(manifest)
    machine_output(str(registry.handoffs.path_for(branch)))


@handoff_group.command("list")
@click.pass_obj
@error_boundary
def list_cmd(ctx: BranchyardContext) -> None:
    """List branches with a hand-off waiting."""
    registry = require_registry(ctx)
    manifests = registry.handoffs.list_manifests()
    if not manifests:
        user_output("No hand-offs waiting.")
        return
    for manifest in manifests:
        user_output(
            f"{click.style(manifest.branch, fg='cyan')}  "
            f"{len(manifest.commits)} commits onto {manifest.new_base_ref}"
        )
