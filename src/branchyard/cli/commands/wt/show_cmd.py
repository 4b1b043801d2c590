import click

from branchyard.cli.core import record_state_label, require_registry, resolve_branch_argument
from branchyard.cli.json_output import emit_json, error_boundary, format_option
from branchyard.cli.output import user_output
from branchyard.cli.rendering import short_sha
from branchyard.core.context import BranchyardContext
from branchyard.core.errors import NotFound


@click.command("show")
@click.argument("branch", required=False)
@format_option
@click.pass_obj
@error_boundary
def show_wt(ctx: BranchyardContext, branch: str | None, output_format: str) -> None:
    """Show one worktree and the commits unique to it (default: the current one)."""
    registry = require_registry(ctx)
    branch = resolve_branch_argument(ctx, registry, branch)
    record = registry.worktrees.get(branch)
    if record is None:
        raise NotFound(branch)

    commits = [] if record.orphaned else registry.worktrees.unique_commits(record)
    bound = not record.orphaned and registry.cache.is_bound(record.path)
    building = registry.cache.is_build_active(branch)

    if output_format == "json":
        emit_json(
            {
                **record.to_json_dict(),
                "status": record_state_label(record),
                "cache_bound": bound,
                "build_active": building,
                "unique_commits": [commit.sha for commit in commits],
            }
        )
        return

    title = click.style(record.branch, fg="cyan", bold=True)
    user_output(f"{title} [{record_state_label(record)}]")
    user_output(f"  path:  {record.path}")
    base = record.base_ref or "unknown"
    user_output(f"  base:  {base} ({short_sha(record.base_sha)})")
    cache_state = "bound" if bound else "NOT bound"
    if building:
        cache_state += " (build running)"
    user_output(f"  cache: {cache_state}")
    user_output(f"  unique commits ({len(commits)}):")
    for commit in commits:
        user_output(f"    {short_sha(commit.sha)} {commit.subject}")
