"""High-level git operations interface.

This module provides a clean abstraction over git subprocess calls, making the
orchestration core testable without a real repository.

Architecture:
- Git: Abstract base class defining the version-control execution boundary
- RealGit: Production implementation using subprocess
- DryRunGit: Wrapper that prints mutating operations instead of running them

The interface deliberately has no push operation. Network writes are handed
to an external signing authority after RemoteAccessPolicy approves them.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class WorktreeInfo:
    """Information about a single git worktree."""

    path: Path
    branch: str | None
    is_root: bool = False


@dataclass(frozen=True)
class CommitInfo:
    """Metadata for one commit, as handed to the external signer."""

    sha: str
    subject: str
    body: str
    author_name: str
    author_email: str
    authored_at: str  # ISO 8601, as reported by git


@dataclass(frozen=True)
class CherryPickResult:
    """Outcome of applying one commit's changes without committing."""

    commit_sha: str
    conflicted_paths: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.conflicted_paths


# ============================================================================
# Abstract Interface
# ============================================================================


class Git(ABC):
    """Abstract interface for git operations.

    All implementations (real and fake) must implement this interface.
    This interface contains ONLY runtime operations - no test setup methods.
    """

    @abstractmethod
    def list_worktrees(self, repo_root: Path) -> list[WorktreeInfo]:
        """List all worktrees in the repository.

        The first entry is always the repository's own checkout (is_root=True).
        """
        ...

    @abstractmethod
    def get_git_common_dir(self, cwd: Path) -> Path | None:
        """Get the common git directory (the shared object store)."""
        ...

    @abstractmethod
    def resolve_commit(self, repo_root: Path, ref: str) -> str | None:
        """Resolve a reference to a full commit SHA.

        Returns:
            Commit SHA, or None if the reference does not name a commit.
        """
        ...

    @abstractmethod
    def get_trunk_branch(self, repo_root: Path) -> str:
        """Get the trunk branch name for the repository.

        Detects trunk by checking git's remote HEAD reference, falling back to
        'main' then 'master'.
        """
        ...

    @abstractmethod
    def list_local_branches(self, repo_root: Path) -> list[str]:
        """List all local branch names in the repository."""
        ...

    @abstractmethod
    def add_worktree(
        self,
        repo_root: Path,
        path: Path,
        *,
        branch: str,
        ref: str | None,
        create_branch: bool,
    ) -> None:
        """Add a new git worktree sharing the repository's object store.

        Args:
            repo_root: Path to the git repository root
            path: Path where the worktree should be created
            branch: Branch to check out in the worktree
            ref: Start point when creating the branch
            create_branch: True to create `branch` at `ref`, False to check out existing
        """
        ...

    @abstractmethod
    def remove_worktree(self, repo_root: Path, path: Path, *, force: bool) -> None:
        """Remove a worktree.

        Args:
            repo_root: Path to the git repository root
            path: Path to the worktree to remove
            force: True to force removal even if worktree has uncommitted changes
        """
        ...

    @abstractmethod
    def prune_worktrees(self, repo_root: Path) -> None:
        """Prune stale worktree metadata."""
        ...

    @abstractmethod
    def delete_branch(self, repo_root: Path, branch: str, *, force: bool) -> None:
        """Delete a local branch.

        Args:
            repo_root: Path to the git repository root
            branch: Name of the branch to delete
            force: Use -D (force delete) instead of -d
        """
        ...

    @abstractmethod
    def list_commits(self, repo_root: Path, base: str, head: str) -> list[CommitInfo]:
        """List commits reachable from `head` but not from `base`, oldest first."""
        ...

    @abstractmethod
    def has_uncommitted_changes(self, cwd: Path) -> bool:
        """Check if a worktree has staged or modified tracked files.

        Untracked files are ignored: reset --hard leaves them in place.
        """
        ...

    @abstractmethod
    def list_staged_files(self, cwd: Path) -> list[str]:
        """List paths whose changes are staged in the index."""
        ...

    @abstractmethod
    def list_unmerged_files(self, cwd: Path) -> list[str]:
        """List paths left in a conflicted (unmerged) state."""
        ...

    @abstractmethod
    def reset_hard(self, cwd: Path, ref: str) -> None:
        """Point the checked-out branch at `ref`, discarding index and working tree state."""
        ...

    @abstractmethod
    def cherry_pick_no_commit(self, cwd: Path, commit_sha: str) -> CherryPickResult:
        """Apply a commit's changes to the index and working tree without committing.

        A content conflict is reported through the result, not raised. Any
        other failure raises RuntimeError.
        """
        ...

    @abstractmethod
    def quit_cherry_pick(self, cwd: Path) -> None:
        """Forget any in-progress cherry-pick sequence without touching the tree."""
        ...

    @abstractmethod
    def update_ref(self, repo_root: Path, ref: str, sha: str) -> None:
        """Create or move a ref to point at `sha`."""
        ...

    @abstractmethod
    def delete_ref(self, repo_root: Path, ref: str) -> None:
        """Delete a ref if it exists."""
        ...

    @abstractmethod
    def list_remotes(self, repo_root: Path) -> dict[str, str]:
        """Map configured remote names to their fetch URLs."""
        ...

    @abstractmethod
    def fetch(self, repo_root: Path, remote: str, ref: str | None) -> None:
        """Fetch from a remote (read-only network operation)."""
        ...

    @abstractmethod
    def clone(self, url: str, dest: Path) -> None:
        """Clone a repository into `dest`."""
        ...

    @abstractmethod
    def path_exists(self, path: Path) -> bool:
        """Check if a path exists on the filesystem."""
        ...

    @abstractmethod
    def is_dir(self, path: Path) -> bool:
        """Check if a path is a directory."""
        ...
