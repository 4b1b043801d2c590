"""Rich tables and summaries for human-facing output."""

import click
from rich.console import Console
from rich.table import Table

from branchyard.cli.core import record_state_label
from branchyard.cli.output import user_output
from branchyard.core.handoff import HandoffManifest
from branchyard.core.operations import RetargetOperation, RetargetOutcome
from branchyard.core.records import WorktreeRecord

_STATE_STYLES = {
    "active": "green",
    "active (untracked)": "cyan",
    "conflicted": "red",
    "retargeting": "yellow",
    "orphaned": "dim",
}


def short_sha(sha: str | None) -> str:
    return sha[:10] if sha else "-"


def render_worktree_table(records: list[WorktreeRecord]) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("branch", style="cyan", no_wrap=True)
    table.add_column("state", no_wrap=True)
    table.add_column("base", no_wrap=True)
    table.add_column("path")

    for record in records:
        label = record_state_label(record)
        style = _STATE_STYLES.get(label, "")
        base = record.base_ref or "-"
        if record.base_sha:
            base = f"{base} ({short_sha(record.base_sha)})"
        state_cell = f"[{style}]{label}[/{style}]" if style else label
        table.add_row(record.branch, state_cell, base, str(record.path))

    console = Console(stderr=True, width=200)
    console.print(table)


def render_operation(operation: RetargetOperation) -> None:
    outcome_color = {
        RetargetOutcome.PENDING: "yellow",
        RetargetOutcome.CONFLICTED: "red",
        RetargetOutcome.REPLAYED_UNSIGNED: "green",
        RetargetOutcome.ABORTED: "white",
    }[operation.outcome]
    user_output(
        f"Retarget of {click.style(operation.branch, fg='cyan', bold=True)}: "
        + click.style(operation.outcome.value, fg=outcome_color, bold=True)
    )
    original = operation.original_base_ref or short_sha(operation.original_base_sha)
    user_output(f"  from: {original} ({short_sha(operation.original_base_sha)})")
    user_output(f"  onto: {operation.new_base_ref} ({short_sha(operation.new_base_sha)})")
    user_output(f"  commits ({len(operation.commits)}, oldest first):")
    for commit in operation.commits:
        marker = "+" if commit.sha in operation.applied else " "
        if commit.sha == operation.conflict_sha:
            marker = click.style("!", fg="red", bold=True)
        user_output(f"    {marker} {short_sha(commit.sha)} {commit.subject}")
    if operation.conflicted_paths:
        user_output(click.style("  conflicted paths:", fg="red"))
        for path in operation.conflicted_paths:
            user_output(f"    {path}")


def render_handoff(manifest: HandoffManifest) -> None:
    user_output(
        f"Hand-off for {click.style(manifest.branch, fg='cyan', bold=True)}: "
        + click.style("replayed-unsigned", fg="green", bold=True)
    )
    user_output(f"  worktree: {manifest.worktree_path}")
    user_output(f"  new base: {manifest.new_base_ref} ({short_sha(manifest.new_base_sha)})")
    user_output(f"  staged paths: {len(manifest.staged_paths)}")
    user_output(f"  commits to finalize ({len(manifest.commits)}):")
    for commit in manifest.commits:
        user_output(f"    {short_sha(commit.sha)} {commit.subject}")
    if manifest.push_request is None:
        user_output("  push: none (no read-write fork is bound)")
    else:
        push = manifest.push_request
        user_output(f"  push: {push.branch} -> {push.remote} ({push.url}), force-with-lease")
