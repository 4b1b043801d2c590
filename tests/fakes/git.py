"""Fake git operations for testing.

FakeGit is an in-memory implementation that accepts pre-configured state in
its constructor. The commit graph and refs live in memory; worktree
directories are real so filesystem checks behave as they do in production.

Each worktree's index is modelled as a full snapshot of file contents. The
working tree and the index are not distinguished: anything that differs from
the checked-out commit counts as an uncommitted (staged) change.
"""

import shutil
from dataclasses import dataclass, field
from pathlib import Path

from branchyard.core.git.abc import CherryPickResult, CommitInfo, Git, WorktreeInfo

CONFLICT_MARKER = "<<<<<<< conflict >>>>>>>"


@dataclass(frozen=True)
class FakeCommit:
    """A commit described by the changes it makes to its parent.

    `changes` maps path -> new content, or None to delete the path.
    """

    sha: str
    parent: str | None
    changes: dict[str, str | None]
    subject: str = ""
    body: str = ""
    author_name: str = "Test Author"
    author_email: str = "author@example.com"


@dataclass
class _WorktreeState:
    branch: str
    index: dict[str, str]
    unmerged: list[str] = field(default_factory=list)


class FakeGit(Git):
    """In-memory fake implementation of git operations.

    State is provided via the constructor. Mutations are tracked in read-only
    properties for test assertions. `simulate_*` methods stand in for what the
    operator does by hand in a worktree (editing files, resolving conflicts).
    """

    def __init__(
        self,
        *,
        repo_root: Path,
        commits: list[FakeCommit],
        branches: dict[str, str],
        root_branch: str,
        trunk_branch: str = "main",
        remotes: dict[str, str] | None = None,
        existing_worktrees: dict[Path, str] | None = None,
    ) -> None:
        """Create FakeGit with pre-configured state.

        Args:
            repo_root: Path of the shared repository's own checkout
            commits: Commits in parent-before-child order
            branches: Mapping of branch name -> commit SHA
            root_branch: Branch checked out in the repository's own checkout
            trunk_branch: Value returned by get_trunk_branch()
            remotes: Mapping of remote name -> URL
            existing_worktrees: Linked worktrees present before the test (path -> branch);
                their directories are created
        """
        self._repo_root = repo_root
        self._commits: dict[str, FakeCommit] = {}
        self._trees: dict[str, dict[str, str]] = {}
        for commit in commits:
            self._add_commit(commit)

        self._branches = dict(branches)
        self._refs: dict[str, str] = {}
        self._trunk = trunk_branch
        self._remotes = remotes or {}

        self._worktrees: dict[Path, _WorktreeState] = {
            repo_root: self._fresh_state(root_branch),
        }
        for path, branch in (existing_worktrees or {}).items():
            path.mkdir(parents=True, exist_ok=True)
            self._worktrees[path] = self._fresh_state(branch)

        self._added_worktrees: list[tuple[Path, str]] = []
        self._removed_worktrees: list[Path] = []
        self._deleted_branches: list[str] = []
        self._cherry_picks: list[tuple[Path, str]] = []
        self._resets: list[tuple[Path, str]] = []
        self._fetches: list[tuple[str, str | None]] = []
        self._clones: list[tuple[str, Path]] = []
        self._prune_calls = 0

    # ------------------------------------------------------------------
    # fake internals
    # ------------------------------------------------------------------

    def _add_commit(self, commit: FakeCommit) -> None:
        tree = dict(self._trees[commit.parent]) if commit.parent is not None else {}
        for path, content in commit.changes.items():
            if content is None:
                tree.pop(path, None)
            else:
                tree[path] = content
        self._commits[commit.sha] = commit
        self._trees[commit.sha] = tree

    def _fresh_state(self, branch: str) -> _WorktreeState:
        return _WorktreeState(branch=branch, index=dict(self._trees[self._branches[branch]]))

    def _state(self, cwd: Path) -> _WorktreeState:
        state = self._worktrees.get(cwd)
        if state is None:
            raise RuntimeError(f"Failed: {cwd} is not a git worktree")
        return state

    def _head_tree(self, state: _WorktreeState) -> dict[str, str]:
        return self._trees[self._branches[state.branch]]

    def _ancestors(self, sha: str) -> list[str]:
        """`sha` and its ancestors, newest first (fake histories are linear)."""
        chain: list[str] = []
        current: str | None = sha
        while current is not None:
            chain.append(current)
            current = self._commits[current].parent
        return chain

    # ------------------------------------------------------------------
    # assertions
    # ------------------------------------------------------------------

    @property
    def added_worktrees(self) -> list[tuple[Path, str]]:
        return list(self._added_worktrees)

    @property
    def removed_worktrees(self) -> list[Path]:
        return list(self._removed_worktrees)

    @property
    def deleted_branches(self) -> list[str]:
        return list(self._deleted_branches)

    @property
    def cherry_picks(self) -> list[tuple[Path, str]]:
        return list(self._cherry_picks)

    @property
    def resets(self) -> list[tuple[Path, str]]:
        return list(self._resets)

    @property
    def fetches(self) -> list[tuple[str, str | None]]:
        return list(self._fetches)

    @property
    def clones(self) -> list[tuple[str, Path]]:
        return list(self._clones)

    @property
    def prune_calls(self) -> int:
        return self._prune_calls

    @property
    def commit_count(self) -> int:
        return len(self._commits)

    @property
    def refs(self) -> dict[str, str]:
        return dict(self._refs)

    def branch_head(self, branch: str) -> str | None:
        return self._branches.get(branch)

    def index_of(self, cwd: Path) -> dict[str, str]:
        return dict(self._state(cwd).index)

    def tree_of(self, sha: str) -> dict[str, str]:
        return dict(self._trees[sha])

    # ------------------------------------------------------------------
    # simulated operator actions
    # ------------------------------------------------------------------

    def simulate_edit(self, cwd: Path, path: str, content: str) -> None:
        """The operator edits a tracked file in a worktree."""
        self._state(cwd).index[path] = content

    def simulate_resolve(self, cwd: Path, path: str, content: str) -> None:
        """The operator fixes a conflicted file and stages it (`git add`)."""
        state = self._state(cwd)
        state.index[path] = content
        if path in state.unmerged:
            state.unmerged.remove(path)

    # ------------------------------------------------------------------
    # Git interface
    # ------------------------------------------------------------------

    def list_worktrees(self, repo_root: Path) -> list[WorktreeInfo]:
        return [
            WorktreeInfo(path=path, branch=state.branch, is_root=path == self._repo_root)
            for path, state in self._worktrees.items()
        ]

    def get_git_common_dir(self, cwd: Path) -> Path | None:
        if cwd not in self._worktrees:
            return None
        return self._repo_root / ".git"

    def resolve_commit(self, repo_root: Path, ref: str) -> str | None:
        if ref in self._branches:
            return self._branches[ref]
        if ref in self._refs:
            return self._refs[ref]
        if ref in self._commits:
            return ref
        return None

    def get_trunk_branch(self, repo_root: Path) -> str:
        return self._trunk

    def list_local_branches(self, repo_root: Path) -> list[str]:
        return sorted(self._branches)

    def add_worktree(
        self,
        repo_root: Path,
        path: Path,
        *,
        branch: str,
        ref: str | None,
        create_branch: bool,
    ) -> None:
        if path.exists():
            raise RuntimeError(f"Failed to add worktree: '{path}' already exists")
        for state in self._worktrees.values():
            if state.branch == branch:
                raise RuntimeError(f"Failed to add worktree: '{branch}' is already checked out")
        if create_branch:
            if branch in self._branches:
                raise RuntimeError(f"Failed to add worktree: branch '{branch}' already exists")
            start = self.resolve_commit(repo_root, ref or "HEAD")
            if start is None:
                raise RuntimeError(f"Failed to add worktree: invalid reference '{ref}'")
            self._branches[branch] = start
        elif branch not in self._branches:
            raise RuntimeError(f"Failed to add worktree: invalid reference '{branch}'")

        path.mkdir(parents=True)
        self._worktrees[path] = self._fresh_state(branch)
        self._added_worktrees.append((path, branch))

    def remove_worktree(self, repo_root: Path, path: Path, *, force: bool) -> None:
        self._state(path)
        if not force and self.has_uncommitted_changes(path):
            raise RuntimeError(f"Failed to remove worktree at {path}: contains modified files")
        del self._worktrees[path]
        if path.exists():
            shutil.rmtree(path)
        self._removed_worktrees.append(path)

    def prune_worktrees(self, repo_root: Path) -> None:
        self._prune_calls += 1
        for path in list(self._worktrees):
            if path != self._repo_root and not path.exists():
                del self._worktrees[path]

    def delete_branch(self, repo_root: Path, branch: str, *, force: bool) -> None:
        for state in self._worktrees.values():
            if state.branch == branch:
                raise RuntimeError(f"Failed to delete branch '{branch}': checked out")
        del self._branches[branch]
        self._deleted_branches.append(branch)

    def list_commits(self, repo_root: Path, base: str, head: str) -> list[CommitInfo]:
        base_sha = self.resolve_commit(repo_root, base)
        head_sha = self.resolve_commit(repo_root, head)
        if base_sha is None or head_sha is None:
            raise RuntimeError(f"Failed to list commits in {base}..{head}")
        excluded = set(self._ancestors(base_sha))
        unique = [sha for sha in self._ancestors(head_sha) if sha not in excluded]
        return [self._commit_info(sha) for sha in reversed(unique)]

    def _commit_info(self, sha: str) -> CommitInfo:
        commit = self._commits[sha]
        return CommitInfo(
            sha=sha,
            subject=commit.subject,
            body=commit.body,
            author_name=commit.author_name,
            author_email=commit.author_email,
            authored_at="2024-01-01T00:00:00+00:00",
        )

    def has_uncommitted_changes(self, cwd: Path) -> bool:
        state = self._state(cwd)
        return bool(state.unmerged) or state.index != self._head_tree(state)

    def list_staged_files(self, cwd: Path) -> list[str]:
        state = self._state(cwd)
        head = self._head_tree(state)
        paths = set(head) | set(state.index)
        return sorted(p for p in paths if head.get(p) != state.index.get(p))

    def list_unmerged_files(self, cwd: Path) -> list[str]:
        return sorted(self._state(cwd).unmerged)

    def reset_hard(self, cwd: Path, ref: str) -> None:
        state = self._state(cwd)
        sha = self.resolve_commit(self._repo_root, ref)
        if sha is None:
            raise RuntimeError(f"Failed to reset {cwd} to '{ref}'")
        self._branches[state.branch] = sha
        state.index = dict(self._trees[sha])
        state.unmerged = []
        self._resets.append((cwd, sha))

    def cherry_pick_no_commit(self, cwd: Path, commit_sha: str) -> CherryPickResult:
        state = self._state(cwd)
        if state.unmerged:
            raise RuntimeError(f"Failed to cherry-pick {commit_sha}: unresolved conflicts")
        commit = self._commits.get(commit_sha)
        if commit is None:
            raise RuntimeError(f"Failed to cherry-pick {commit_sha}: bad revision")
        self._cherry_picks.append((cwd, commit_sha))

        before = self._trees[commit.parent] if commit.parent is not None else {}
        after = self._trees[commit_sha]
        conflicted: list[str] = []
        for path in sorted(set(before) | set(after)):
            old, new = before.get(path), after.get(path)
            if old == new:
                continue
            current = state.index.get(path)
            if current == new:
                continue
            if current != old:
                conflicted.append(path)
                state.index[path] = CONFLICT_MARKER
                continue
            if new is None:
                state.index.pop(path, None)
            else:
                state.index[path] = new

        state.unmerged = conflicted
        return CherryPickResult(commit_sha=commit_sha, conflicted_paths=conflicted)

    def quit_cherry_pick(self, cwd: Path) -> None:
        self._state(cwd)

    def update_ref(self, repo_root: Path, ref: str, sha: str) -> None:
        self._refs[ref] = sha

    def delete_ref(self, repo_root: Path, ref: str) -> None:
        self._refs.pop(ref, None)

    def list_remotes(self, repo_root: Path) -> dict[str, str]:
        return dict(self._remotes)

    def fetch(self, repo_root: Path, remote: str, ref: str | None) -> None:
        if remote not in self._remotes:
            raise RuntimeError(f"Failed to fetch from remote '{remote}'")
        self._fetches.append((remote, ref))

    def clone(self, url: str, dest: Path) -> None:
        dest.mkdir(parents=True)
        self._clones.append((url, dest))

    def path_exists(self, path: Path) -> bool:
        return path.exists()

    def is_dir(self, path: Path) -> bool:
        return path.is_dir()
