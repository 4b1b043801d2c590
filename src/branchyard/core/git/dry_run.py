"""Dry-run Git wrapper.

This module provides a Git wrapper that prevents execution of mutating
operations while delegating read-only operations to the wrapped implementation.
"""

from pathlib import Path

import click

from branchyard.cli.output import user_output
from branchyard.core.git.abc import CherryPickResult, CommitInfo, Git, WorktreeInfo

# ============================================================================
# Dry-run Wrapper
# ============================================================================


class DryRunGit(Git):
    """Wrapper that prints mutating operations instead of executing them.

    Usage:
        real_ops = RealGit()
        dry_run_ops = DryRunGit(real_ops)

        # Prints message instead of removing the worktree
        dry_run_ops.remove_worktree(repo_root, path, force=False)
    """

    def __init__(self, wrapped: Git) -> None:
        self._wrapped = wrapped

    def _announce(self, message: str) -> None:
        user_output(click.style("[DRY RUN] ", fg="yellow", bold=True) + message)

    # Read-only operations: delegate to wrapped implementation

    def list_worktrees(self, repo_root: Path) -> list[WorktreeInfo]:
        return self._wrapped.list_worktrees(repo_root)

    def get_git_common_dir(self, cwd: Path) -> Path | None:
        return self._wrapped.get_git_common_dir(cwd)

    def resolve_commit(self, repo_root: Path, ref: str) -> str | None:
        return self._wrapped.resolve_commit(repo_root, ref)

    def get_trunk_branch(self, repo_root: Path) -> str:
        return self._wrapped.get_trunk_branch(repo_root)

    def list_local_branches(self, repo_root: Path) -> list[str]:
        return self._wrapped.list_local_branches(repo_root)

    def list_commits(self, repo_root: Path, base: str, head: str) -> list[CommitInfo]:
        return self._wrapped.list_commits(repo_root, base, head)

    def has_uncommitted_changes(self, cwd: Path) -> bool:
        return self._wrapped.has_uncommitted_changes(cwd)

    def list_staged_files(self, cwd: Path) -> list[str]:
        return self._wrapped.list_staged_files(cwd)

    def list_unmerged_files(self, cwd: Path) -> list[str]:
        return self._wrapped.list_unmerged_files(cwd)

    def list_remotes(self, repo_root: Path) -> dict[str, str]:
        return self._wrapped.list_remotes(repo_root)

    def path_exists(self, path: Path) -> bool:
        return self._wrapped.path_exists(path)

    def is_dir(self, path: Path) -> bool:
        return self._wrapped.is_dir(path)

    # Mutating operations: print instead of executing

    def add_worktree(
        self,
        repo_root: Path,
        path: Path,
        *,
        branch: str,
        ref: str | None,
        create_branch: bool,
    ) -> None:
        if create_branch:
            self._announce(f"Would run: git worktree add -b {branch} {path} {ref or 'HEAD'}")
        else:
            self._announce(f"Would run: git worktree add {path} {branch}")

    def remove_worktree(self, repo_root: Path, path: Path, *, force: bool) -> None:
        force_flag = "--force " if force else ""
        self._announce(f"Would run: git worktree remove {force_flag}{path}")

    def prune_worktrees(self, repo_root: Path) -> None:
        self._announce("Would run: git worktree prune")

    def delete_branch(self, repo_root: Path, branch: str, *, force: bool) -> None:
        flag = "-D" if force else "-d"
        self._announce(f"Would run: git branch {flag} {branch}")

    def reset_hard(self, cwd: Path, ref: str) -> None:
        self._announce(f"Would run: git reset --hard {ref} (in {cwd})")

    def cherry_pick_no_commit(self, cwd: Path, commit_sha: str) -> CherryPickResult:
        self._announce(f"Would run: git cherry-pick --no-commit {commit_sha} (in {cwd})")
        return CherryPickResult(commit_sha=commit_sha)

    def quit_cherry_pick(self, cwd: Path) -> None:
        self._announce(f"Would run: git cherry-pick --quit (in {cwd})")

    def update_ref(self, repo_root: Path, ref: str, sha: str) -> None:
        self._announce(f"Would run: git update-ref {ref} {sha}")

    def delete_ref(self, repo_root: Path, ref: str) -> None:
        self._announce(f"Would run: git update-ref -d {ref}")

    def fetch(self, repo_root: Path, remote: str, ref: str | None) -> None:
        target = f"{remote} {ref}" if ref is not None else remote
        self._announce(f"Would run: git fetch {target}")

    def clone(self, url: str, dest: Path) -> None:
        self._announce(f"Would run: git clone {url} {dest}")
