"""Dry-run wrapper for GitHub operations."""

from collections.abc import Sequence
from pathlib import Path

import click

from branchyard.cli.output import user_output
from branchyard.core.github.abc import GitHub
from branchyard.core.github.types import PullRequestInfo


class DryRunGitHub(GitHub):
    """Delegates reads to the wrapped implementation; prints writes instead of running them."""

    def __init__(self, wrapped: GitHub) -> None:
        self._wrapped = wrapped

    def get_pr_for_branch(self, repo_root: Path, branch: str) -> PullRequestInfo | None:
        return self._wrapped.get_pr_for_branch(repo_root, branch)

    def get_pr_labels(self, repo_root: Path, pr_number: int) -> list[str]:
        return self._wrapped.get_pr_labels(repo_root, pr_number)

    def get_prs_for_commits(
        self, repo_root: Path, commit_shas: Sequence[str]
    ) -> dict[str, list[int]]:
        return self._wrapped.get_prs_for_commits(repo_root, commit_shas)

    def create_pr(
        self,
        repo_root: Path,
        *,
        head: str,
        base: str,
        title: str,
        body: str,
        draft: bool,
    ) -> int:
        draft_flag = " --draft" if draft else ""
        user_output(
            click.style("[DRY RUN] ", fg="yellow", bold=True)
            + f"Would run: gh pr create --head {head} --base {base}{draft_flag}"
        )
        return 0
