"""Structured pull request facts for external collaborators, and the gated PR write.

The core never drafts titles, bodies or release notes. It reads PR metadata,
labels and the commit-to-PR mapping, and opens a PR only from the read-write
fork binding after RemoteAccessPolicy approves it.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from branchyard.core.errors import ForbiddenRemote
from branchyard.core.git.abc import CommitInfo
from branchyard.core.github.abc import GitHub
from branchyard.core.github.parsing import parse_remote_owner
from branchyard.core.remote_policy import OperationKind, RemoteAccessPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommitPullRequests:
    """One commit and the PRs that contain it."""

    commit: CommitInfo
    pr_numbers: tuple[int, ...]


def map_commits_to_prs(
    github: GitHub, repo_root: Path, commits: list[CommitInfo]
) -> list[CommitPullRequests]:
    """Pair each commit with its PRs, preserving commit order."""
    mapping = github.get_prs_for_commits(repo_root, [c.sha for c in commits])
    return [
        CommitPullRequests(commit=c, pr_numbers=tuple(mapping.get(c.sha, []))) for c in commits
    ]


def qualified_head(url: str, branch: str) -> str:
    """Head reference for a PR opened from a fork: `<owner>:<branch>` when the owner is known."""
    owner = parse_remote_owner(url)
    if owner is None:
        return branch
    return f"{owner}:{branch}"


def open_pull_request(
    policy: RemoteAccessPolicy,
    github: GitHub,
    repo_root: Path,
    *,
    branch: str,
    base: str,
    title: str,
    body: str,
    draft: bool,
) -> int:
    """Open a PR from the contributor's fork into the upstream `base`.

    Authorization happens before the code-hosting API is called.

    Returns:
        PR number

    Raises:
        ForbiddenRemote: If no read-write fork is bound, or it fails the policy
    """
    fork = policy.fork_binding()
    if fork is None:
        raise ForbiddenRemote(
            "(none)", OperationKind.CREATE_PR.value, "no read-write fork is bound"
        )
    policy.authorize(fork.name, OperationKind.CREATE_PR)

    head = qualified_head(fork.url, branch)
    logger.debug("Opening PR %s -> %s", head, base)
    return github.create_pr(
        repo_root, head=head, base=base, title=title, body=body, draft=draft
    )
