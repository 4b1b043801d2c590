"""Handle on the single version-control object store shared by all worktrees."""

from dataclasses import dataclass
from pathlib import Path

from branchyard.core.errors import InvalidBase
from branchyard.core.git.abc import CommitInfo, Git, WorktreeInfo


@dataclass(frozen=True)
class RepositoryHandle:
    """Reference (never a copy) to the shared repository.

    Worktrees created through this handle get their own working directory
    and index but read and write objects in the one common git directory.
    """

    path: Path
    git: Git

    def resolve(self, ref: str) -> str | None:
        return self.git.resolve_commit(self.path, ref)

    def require(self, ref: str) -> str:
        """Resolve `ref` to a commit SHA.

        Raises:
            InvalidBase: If the reference does not resolve
        """
        sha = self.git.resolve_commit(self.path, ref)
        if sha is None:
            raise InvalidBase(ref)
        return sha

    def object_store(self) -> Path | None:
        return self.git.get_git_common_dir(self.path)

    def shares_object_store(self, worktree_path: Path) -> bool:
        """True if `worktree_path` reads objects from this repository's store."""
        store = self.object_store()
        if store is None:
            return False
        return self.git.get_git_common_dir(worktree_path) == store

    def worktrees(self) -> list[WorktreeInfo]:
        return self.git.list_worktrees(self.path)

    def branch_checkout(self, branch: str) -> Path | None:
        """Path of the worktree that has `branch` checked out, if any."""
        for wt in self.worktrees():
            if wt.branch == branch:
                return wt.path
        return None

    def local_branches(self) -> list[str]:
        return self.git.list_local_branches(self.path)

    def trunk_branch(self, configured: str | None) -> str:
        if configured is not None:
            return configured
        return self.git.get_trunk_branch(self.path)

    def unique_commits(self, base_sha: str, head: str) -> list[CommitInfo]:
        """Commits on `head` not reachable from `base_sha`, oldest first."""
        return self.git.list_commits(self.path, base_sha, head)
