"""Production Git implementation using subprocess.

This module provides the real Git implementation that executes actual git
commands via subprocess.
"""

import logging
import subprocess
from pathlib import Path

from branchyard.core.git.abc import CherryPickResult, CommitInfo, Git, WorktreeInfo
from branchyard.core.subprocess import run_subprocess_with_context

logger = logging.getLogger(__name__)

# Field and record separators for `git log --format`
_FIELD_SEP = "\x00"
_RECORD_SEP = "\x1e"

# ============================================================================
# Production Implementation
# ============================================================================


class RealGit(Git):
    """Production implementation using subprocess.

    All git operations execute actual git commands via subprocess.
    """

    def list_worktrees(self, repo_root: Path) -> list[WorktreeInfo]:
        """List all worktrees in the repository."""
        result = run_subprocess_with_context(
            ["git", "worktree", "list", "--porcelain"],
            operation_context="list worktrees",
            cwd=repo_root,
        )

        worktrees: list[WorktreeInfo] = []
        current_path: Path | None = None
        current_branch: str | None = None

        for line in result.stdout.splitlines():
            line = line.strip()
            if line.startswith("worktree "):
                current_path = Path(line.split(maxsplit=1)[1])
                current_branch = None
            elif line.startswith("branch "):
                if current_path is None:
                    continue
                branch_ref = line.split(maxsplit=1)[1]
                current_branch = branch_ref.removeprefix("refs/heads/")
            elif line == "" and current_path is not None:
                worktrees.append(WorktreeInfo(path=current_path, branch=current_branch))
                current_path = None
                current_branch = None

        if current_path is not None:
            worktrees.append(WorktreeInfo(path=current_path, branch=current_branch))

        # Mark first worktree as root (git guarantees this ordering)
        if worktrees:
            first = worktrees[0]
            worktrees[0] = WorktreeInfo(path=first.path, branch=first.branch, is_root=True)

        return worktrees

    def get_git_common_dir(self, cwd: Path) -> Path | None:
        """Get the common git directory."""
        result = subprocess.run(
            ["git", "rev-parse", "--git-common-dir"],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            return None

        git_dir = Path(result.stdout.strip())
        if not git_dir.is_absolute():
            git_dir = cwd / git_dir

        return git_dir.resolve()

    def resolve_commit(self, repo_root: Path, ref: str) -> str | None:
        """Resolve a reference to a full commit SHA."""
        result = subprocess.run(
            ["git", "rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"],
            cwd=repo_root,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            return None

        return result.stdout.strip() or None

    def get_trunk_branch(self, repo_root: Path) -> str:
        """Get the trunk branch name for the repository."""
        # 1. Try git symbolic-ref to detect default branch
        result = subprocess.run(
            ["git", "symbolic-ref", "refs/remotes/origin/HEAD"],
            cwd=repo_root,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode == 0:
            # Parse "refs/remotes/origin/master" -> "master"
            ref = result.stdout.strip()
            if ref.startswith("refs/remotes/origin/"):
                return ref.removeprefix("refs/remotes/origin/")

        # 2. Fallback: try 'main' then 'master', use first that exists
        for candidate in ["main", "master"]:
            result = subprocess.run(
                ["git", "show-ref", "--verify", f"refs/heads/{candidate}"],
                cwd=repo_root,
                capture_output=True,
                check=False,
            )
            if result.returncode == 0:
                return candidate

        # 3. Final fallback: 'main'
        return "main"

    def list_local_branches(self, repo_root: Path) -> list[str]:
        """List all local branch names in the repository."""
        result = run_subprocess_with_context(
            ["git", "branch", "--format=%(refname:short)"],
            operation_context="list local branches",
            cwd=repo_root,
        )
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def add_worktree(
        self,
        repo_root: Path,
        path: Path,
        *,
        branch: str,
        ref: str | None,
        create_branch: bool,
    ) -> None:
        """Add a new git worktree."""
        if create_branch:
            base_ref = ref or "HEAD"
            cmd = ["git", "worktree", "add", "-b", branch, str(path), base_ref]
            context = f"add worktree with new branch '{branch}' at {path}"
        else:
            cmd = ["git", "worktree", "add", str(path), branch]
            context = f"add worktree for branch '{branch}' at {path}"

        logger.debug("git: %s", " ".join(cmd))
        run_subprocess_with_context(cmd, operation_context=context, cwd=repo_root)

    def remove_worktree(self, repo_root: Path, path: Path, *, force: bool) -> None:
        """Remove a worktree."""
        cmd = ["git", "worktree", "remove"]
        if force:
            cmd.append("--force")
        cmd.append(str(path))
        logger.debug("git: %s", " ".join(cmd))
        run_subprocess_with_context(
            cmd,
            operation_context=f"remove worktree at {path}",
            cwd=repo_root,
        )

    def prune_worktrees(self, repo_root: Path) -> None:
        """Prune stale worktree metadata."""
        run_subprocess_with_context(
            ["git", "worktree", "prune"],
            operation_context="prune worktree metadata",
            cwd=repo_root,
        )

    def delete_branch(self, repo_root: Path, branch: str, *, force: bool) -> None:
        """Delete a local branch."""
        flag = "-D" if force else "-d"
        run_subprocess_with_context(
            ["git", "branch", flag, branch],
            operation_context=f"delete branch '{branch}'",
            cwd=repo_root,
        )

    def list_commits(self, repo_root: Path, base: str, head: str) -> list[CommitInfo]:
        """List commits reachable from `head` but not from `base`, oldest first."""
        # git expands %x00 and %x1e itself; argv cannot carry NUL bytes
        fmt = "%x00".join(["%H", "%s", "%an", "%ae", "%aI", "%b"]) + "%x1e"
        result = run_subprocess_with_context(
            ["git", "log", "--reverse", f"--format={fmt}", f"{base}..{head}"],
            operation_context=f"list commits in {base}..{head}",
            cwd=repo_root,
        )

        commits: list[CommitInfo] = []
        for record in result.stdout.split(_RECORD_SEP):
            record = record.strip("\n")
            if not record:
                continue

            parts = record.split(_FIELD_SEP)
            if len(parts) != 6:
                continue

            commits.append(
                CommitInfo(
                    sha=parts[0],
                    subject=parts[1],
                    author_name=parts[2],
                    author_email=parts[3],
                    authored_at=parts[4],
                    body=parts[5].strip(),
                )
            )

        return commits

    def has_uncommitted_changes(self, cwd: Path) -> bool:
        """Check if a worktree has uncommitted changes to tracked files."""
        result = run_subprocess_with_context(
            ["git", "status", "--porcelain", "--untracked-files=no"],
            operation_context=f"check for uncommitted changes in {cwd}",
            cwd=cwd,
        )
        return bool(result.stdout.strip())

    def list_staged_files(self, cwd: Path) -> list[str]:
        """List paths whose changes are staged in the index."""
        result = run_subprocess_with_context(
            ["git", "diff", "--cached", "--name-only"],
            operation_context=f"list staged files in {cwd}",
            cwd=cwd,
        )
        return [line for line in result.stdout.splitlines() if line]

    def list_unmerged_files(self, cwd: Path) -> list[str]:
        """List paths left in a conflicted (unmerged) state."""
        result = run_subprocess_with_context(
            ["git", "diff", "--name-only", "--diff-filter=U"],
            operation_context=f"list conflicted paths in {cwd}",
            cwd=cwd,
        )
        return sorted(set(line for line in result.stdout.splitlines() if line))

    def reset_hard(self, cwd: Path, ref: str) -> None:
        """Point the checked-out branch at `ref`, discarding index and working tree state."""
        logger.debug("git: reset --hard %s in %s", ref, cwd)
        run_subprocess_with_context(
            ["git", "reset", "--hard", ref],
            operation_context=f"reset {cwd} to '{ref}'",
            cwd=cwd,
        )

    def cherry_pick_no_commit(self, cwd: Path, commit_sha: str) -> CherryPickResult:
        """Apply a commit's changes to the index and working tree without committing."""
        logger.debug("git: cherry-pick --no-commit %s in %s", commit_sha, cwd)
        result = subprocess.run(
            ["git", "cherry-pick", "--no-commit", commit_sha],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode == 0:
            return CherryPickResult(commit_sha=commit_sha)

        # Distinguish a content conflict (unmerged paths) from any other failure
        conflicted = self.list_unmerged_files(cwd)
        if conflicted:
            return CherryPickResult(commit_sha=commit_sha, conflicted_paths=conflicted)

        raise RuntimeError(
            f"Failed to cherry-pick {commit_sha} in {cwd}\n"
            f"Exit code: {result.returncode}\n"
            f"stderr: {result.stderr.strip()}"
        )

    def quit_cherry_pick(self, cwd: Path) -> None:
        """Forget any in-progress cherry-pick sequence without touching the tree."""
        # Exits non-zero when nothing is in progress, which is fine here
        subprocess.run(
            ["git", "cherry-pick", "--quit"],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )

    def update_ref(self, repo_root: Path, ref: str, sha: str) -> None:
        """Create or move a ref to point at `sha`."""
        run_subprocess_with_context(
            ["git", "update-ref", ref, sha],
            operation_context=f"point '{ref}' at {sha}",
            cwd=repo_root,
        )

    def delete_ref(self, repo_root: Path, ref: str) -> None:
        """Delete a ref if it exists."""
        if self.resolve_commit(repo_root, ref) is None:
            return
        run_subprocess_with_context(
            ["git", "update-ref", "-d", ref],
            operation_context=f"delete ref '{ref}'",
            cwd=repo_root,
        )

    def list_remotes(self, repo_root: Path) -> dict[str, str]:
        """Map configured remote names to their fetch URLs."""
        result = run_subprocess_with_context(
            ["git", "remote", "-v"],
            operation_context="list remotes",
            cwd=repo_root,
        )
        remotes: dict[str, str] = {}
        for line in result.stdout.splitlines():
            parts = line.split()
            if len(parts) == 3 and parts[2] == "(fetch)":
                remotes[parts[0]] = parts[1]
        return remotes

    def fetch(self, repo_root: Path, remote: str, ref: str | None) -> None:
        """Fetch from a remote."""
        cmd = ["git", "fetch", remote]
        if ref is not None:
            cmd.append(ref)
        run_subprocess_with_context(
            cmd,
            operation_context=f"fetch from remote '{remote}'",
            cwd=repo_root,
        )

    def clone(self, url: str, dest: Path) -> None:
        """Clone a repository into `dest`."""
        run_subprocess_with_context(
            ["git", "clone", url, str(dest)],
            operation_context=f"clone {url} into {dest}",
        )

    def path_exists(self, path: Path) -> bool:
        """Check if a path exists on the filesystem."""
        return path.exists()

    def is_dir(self, path: Path) -> bool:
        """Check if a path is a directory."""
        return path.is_dir()
