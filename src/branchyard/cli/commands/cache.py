"""Shared build cache commands."""

import click

from branchyard.cli.core import require_registry, resolve_branch_argument
from branchyard.cli.json_output import emit_json, error_boundary, format_option
from branchyard.cli.output import user_output
from branchyard.core.context import BranchyardContext
from branchyard.core.errors import NotFound


@click.group("cache")
def cache_group() -> None:
    """Manage the build cache shared by every worktree."""
    pass


@cache_group.command("bind")
@click.argument("branch", required=False)
@click.option("--all", "bind_all", is_flag=True, help="Rebind every worktree.")
@click.pass_obj
@error_boundary
def bind_cmd(ctx: BranchyardContext, branch: str | None, bind_all: bool) -> None:
    """Write or repair a worktree's cache configuration (default: the current one)."""
    registry = require_registry(ctx)
    if bind_all:
        records = [r for r in registry.worktrees.list_worktrees() if not r.orphaned]
    else:
        branch = resolve_branch_argument(ctx, registry, branch)
        records = [registry.worktrees.require(branch)]

    for record in records:
        binding = registry.cache.bind(record.path, branch=record.branch)
        user_output(
            f"Bound {click.style(record.branch, fg='cyan')} -> {binding.cache_dir} "
            f"({binding.env_file.name})"
        )


@cache_group.command("status")
@format_option
@click.pass_obj
@error_boundary
def status_cmd(ctx: BranchyardContext, output_format: str) -> None:
    """Show the cache location, which worktrees are bound and which builds are running."""
    registry = require_registry(ctx)
    cache_dir = registry.cache.resolved_cache_dir()
    rows = [
        (record.branch, registry.cache.is_bound(record.path))
        for record in registry.worktrees.list_worktrees()
        if not record.orphaned
    ]
    active = registry.cache.active_builds()

    if output_format == "json":
        emit_json(
            {
                "cache_dir": cache_dir,
                "bound": {branch: bound for branch, bound in rows},
                "active_builds": active,
            }
        )
        return

    user_output(f"Build cache: {click.style(str(cache_dir), fg='green')}")
    for branch, bound in rows:
        state = click.style("bound", fg="green") if bound else click.style("NOT bound", fg="red")
        user_output(f"  {branch}: {state}")
    if active:
        user_output(f"Builds running: {', '.join(active)}")


@cache_group.command("run", context_settings=dict(ignore_unknown_options=True))
@click.argument("branch")
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.pass_obj
@error_boundary
def run_cmd(ctx: BranchyardContext, branch: str, command: tuple[str, ...]) -> None:
    """Run COMMAND in BRANCH's worktree while it holds the cache writer lock.

    While the command runs, 'wt remove BRANCH' refuses with ActiveOperation.
    """
    registry = require_registry(ctx)
    record = registry.worktrees.get(branch)
    if record is None or record.orphaned:
        raise NotFound(branch)
    exit_code = registry.cache.run_build(branch, record.path, list(command))
    raise SystemExit(exit_code)
