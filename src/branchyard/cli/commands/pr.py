"""Pull request facts and the fork-gated PR creation."""

import click

from branchyard.cli.core import require_registry, resolve_branch_argument
from branchyard.cli.json_output import emit_json, error_boundary, format_option
from branchyard.cli.output import machine_output, user_output
from branchyard.cli.rendering import short_sha
from branchyard.core.context import BranchyardContext
from branchyard.core.pull_requests import map_commits_to_prs, open_pull_request


@click.group("pr")
def pr_group() -> None:
    """Read PR metadata; open PRs from the contributor's fork."""
    pass


@pr_group.command("info")
@click.argument("branch", required=False)
@format_option
@click.pass_obj
@error_boundary
def info_cmd(ctx: BranchyardContext, branch: str | None, output_format: str) -> None:
    """Show the PR for BRANCH and its labels."""
    registry = require_registry(ctx)
    branch = resolve_branch_argument(ctx, registry, branch)
    pr = ctx.github.get_pr_for_branch(registry.repository.path, branch)

    if output_format == "json":
        emit_json({"branch": branch, "pr": pr})
        return
    if pr is None:
        user_output(f"No PR found for {click.style(branch, fg='cyan')}")
        return

    user_output(f"#{pr.number} {pr.title} [{pr.state}{', draft' if pr.is_draft else ''}]")
    user_output(f"  {pr.head_ref} -> {pr.base_ref}")
    user_output(f"  labels: {', '.join(pr.labels) if pr.labels else '-'}")
    user_output(f"  {pr.url}")


@pr_group.command("commits")
@click.argument("branch", required=False)
@format_option
@click.pass_obj
@error_boundary
def commits_cmd(ctx: BranchyardContext, branch: str | None, output_format: str) -> None:
    """Map each commit unique to BRANCH to the PRs containing it."""
    registry = require_registry(ctx)
    branch = resolve_branch_argument(ctx, registry, branch)
    record = registry.worktrees.require(branch)
    commits = registry.worktrees.unique_commits(record)
    pairs = map_commits_to_prs(ctx.github, registry.repository.path, commits)

    if output_format == "json":
        emit_json(
            {
                "branch": branch,
                "commits": [
                    {"sha": p.commit.sha, "subject": p.commit.subject, "prs": p.pr_numbers}
                    for p in pairs
                ],
            }
        )
        return

    for pair in pairs:
        prs = ", ".join(f"#{n}" for n in pair.pr_numbers) or "-"
        user_output(f"{short_sha(pair.commit.sha)} {pair.commit.subject}  {prs}")


@pr_group.command("create")
@click.argument("branch")
@click.option("--base", required=True, help="Upstream branch the PR targets.")
@click.option("--title", required=True)
@click.option("--body", default="", help="PR body (markdown).")
@click.option("--draft", is_flag=True)
@click.pass_obj
@error_boundary
def create_cmd(
    ctx: BranchyardContext, branch: str, base: str, title: str, body: str, draft: bool
) -> None:
    """Open a PR for BRANCH from the read-write fork binding."""
    registry = require_registry(ctx)
    number = open_pull_request(
        registry.policy,
        ctx.github,
        registry.repository.path,
        branch=branch,
        base=base,
        title=title,
        body=body,
        draft=draft,
    )
    user_output(f"Opened PR #{number}")
    machine_output(str(number))
