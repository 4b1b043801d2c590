"""Abstract base class for the code-hosting API.

Reads (PR metadata, labels, commit-to-PR mapping) are unrestricted. The one
write, create_pr, must only be reached through open_pull_request(), which
authorizes it against the read-write fork binding first.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

from branchyard.core.github.types import PullRequestInfo


class GitHub(ABC):
    """Abstract interface for GitHub operations.

    All implementations (real and fake) must implement this interface.
    """

    @abstractmethod
    def get_pr_for_branch(self, repo_root: Path, branch: str) -> PullRequestInfo | None:
        """Get the most recent PR whose head is `branch`.

        Returns:
            PullRequestInfo, or None if no PR exists or gh is unavailable
        """
        ...

    @abstractmethod
    def get_pr_labels(self, repo_root: Path, pr_number: int) -> list[str]:
        """Get the label names on a PR (empty if the PR cannot be read)."""
        ...

    @abstractmethod
    def get_prs_for_commits(
        self, repo_root: Path, commit_shas: Sequence[str]
    ) -> dict[str, list[int]]:
        """Map each commit SHA to the numbers of the PRs that contain it.

        Commits with no associated PR map to an empty list.
        """
        ...

    @abstractmethod
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
        """Create a pull request.

        Args:
            repo_root: Repository root directory
            head: Head branch, qualified as `<owner>:<branch>` for a fork
            base: Target base branch
            title: PR title
            body: PR body (markdown)
            draft: If True, create as draft PR

        Returns:
            PR number
        """
        ...
