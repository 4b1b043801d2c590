"""Retarget commands: replay a worktree's commits onto a new base, unsigned."""

import click

from branchyard.cli.core import require_registry, resolve_branch_argument
from branchyard.cli.json_output import emit_json, error_boundary, format_option
from branchyard.cli.output import user_output
from branchyard.cli.rendering import render_handoff, render_operation
from branchyard.core.context import BranchyardContext
from branchyard.core.operations import RetargetOperation, RetargetOutcome


def _report(operation: RetargetOperation, output_format: str) -> None:
    """Print the operation; a conflicted one also fails the command."""
    if output_format == "json" and operation.outcome is not RetargetOutcome.CONFLICTED:
        emit_json(operation.to_json_dict())
        return
    if output_format != "json":
        render_operation(operation)

    if operation.outcome is RetargetOutcome.CONFLICTED:
        if output_format != "json":
            user_output(
                "Fix the conflicts in the worktree and stage them, then run "
                + click.style("branchyard retarget resolve", fg="yellow")
                + ", or "
                + click.style("branchyard retarget abort", fg="yellow")
                + " to restore the original branch."
            )
        raise operation.conflict_error()

    if operation.outcome is RetargetOutcome.REPLAYED_UNSIGNED:
        user_output(
            "Changes are staged, not committed. Hand the manifest to the signer with "
            + click.style(f"branchyard handoff show {operation.branch}", fg="yellow")
        )


@click.group("retarget")
def retarget_group() -> None:
    """Move a worktree's unique commits onto a different base."""
    pass


@retarget_group.command("begin")
@click.argument("branch")
@click.argument("new_base")
@click.option("--from-base", default=None, help="Original base, if none was recorded.")
@click.option("--replay", "replay_now", is_flag=True, help="Replay immediately.")
@format_option
@click.pass_obj
@error_boundary
def begin_cmd(
    ctx: BranchyardContext,
    branch: str,
    new_base: str,
    from_base: str | None,
    replay_now: bool,
    output_format: str,
) -> None:
    """Record a pending retarget of BRANCH onto NEW_BASE."""
    registry = require_registry(ctx)
    operation = registry.retargets.begin_retarget(branch, new_base, from_base=from_base)
    if replay_now:
        operation = registry.retargets.replay(branch)
    _report(operation, output_format)


@retarget_group.command("replay")
@click.argument("branch", required=False)
@format_option
@click.pass_obj
@error_boundary
def replay_cmd(ctx: BranchyardContext, branch: str | None, output_format: str) -> None:
    """Reset to the new base and stage each commit without committing."""
    registry = require_registry(ctx)
    branch = resolve_branch_argument(ctx, registry, branch)
    _report(registry.retargets.replay(branch), output_format)


@retarget_group.command("resolve")
@click.argument("branch", required=False)
@format_option
@click.pass_obj
@error_boundary
def resolve_cmd(ctx: BranchyardContext, branch: str | None, output_format: str) -> None:
    """Continue a conflicted replay after fixing and staging the conflicts."""
    registry = require_registry(ctx)
    branch = resolve_branch_argument(ctx, registry, branch)
    _report(registry.retargets.resolve(branch), output_format)


@retarget_group.command("abort")
@click.argument("branch", required=False)
@format_option
@click.pass_obj
@error_boundary
def abort_cmd(ctx: BranchyardContext, branch: str | None, output_format: str) -> None:
    """Restore BRANCH to its pre-retarget head and base."""
    registry = require_registry(ctx)
    branch = resolve_branch_argument(ctx, registry, branch)
    operation = registry.retargets.abort(branch)

    if output_format == "json":
        emit_json({"branch": branch, "aborted": operation is not None})
        return

    if operation is None:
        user_output(f"Nothing to abort for {click.style(branch, fg='cyan')}")
        return
    user_output(
        f"Aborted retarget of {click.style(branch, fg='cyan', bold=True)}; "
        f"restored {operation.original_head_sha[:10]}"
    )


@retarget_group.command("status")
@click.argument("branch", required=False)
@format_option
@click.pass_obj
@error_boundary
def status_cmd(ctx: BranchyardContext, branch: str | None, output_format: str) -> None:
    """Show outstanding retargets (all of them when no BRANCH is given)."""
    registry = require_registry(ctx)
    if branch is None:
        statuses = registry.retargets.outstanding()
    else:
        statuses = [registry.retargets.status(branch)]

    if output_format == "json":
        emit_json(
            {
                "retargets": [
                    {
                        "branch": status.branch,
                        "operation": (
                            status.operation.to_json_dict() if status.operation else None
                        ),
                        "handoff": status.handoff.to_json_dict() if status.handoff else None,
                    }
                    for status in statuses
                ]
            }
        )
        return

    outstanding = [status for status in statuses if not status.idle]
    if not outstanding:
        user_output("No retargets outstanding.")
        return
    for status in outstanding:
        if status.operation is not None:
            render_operation(status.operation)
        if status.handoff is not None:
            render_handoff(status.handoff)


@retarget_group.command("finalize")
@click.argument("branch")
@format_option
@click.pass_obj
@error_boundary
def finalize_cmd(ctx: BranchyardContext, branch: str, output_format: str) -> None:
    """Record that the external signer committed and pushed BRANCH."""
    registry = require_registry(ctx)
    manifest = registry.retargets.finalize_handoff(branch)

    if output_format == "json":
        emit_json({"branch": branch, "finalized": True, "new_base_sha": manifest.new_base_sha})
        return
    user_output(f"Hand-off for {click.style(branch, fg='cyan', bold=True)} finalized")
