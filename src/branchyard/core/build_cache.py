"""Coordination of the single build-artifact cache shared by every worktree.

The coordinator does not arbitrate artifact-level write races; the build tool
is expected to lock its own artifact paths. What it guarantees is that every
worktree is configured identically, that the cache never points outside the
workspace root, and that a build writing into the cache and the removal of
its worktree exclude each other.
"""

import logging
import os
import subprocess
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass
from pathlib import Path

from branchyard.core.errors import ActiveOperation
from branchyard.core.locking import LockBusy, exclusive_lock, is_locked
from branchyard.core.naming import branch_key
from branchyard.core.workspace import Workspace

logger = logging.getLogger(__name__)

WRITERS_DIRNAME = ".writers"
MANAGED_HEADER = "# Managed by branchyard: shared build cache"


@dataclass(frozen=True)
class CacheBinding:
    """Result of binding one worktree to the shared cache."""

    worktree_path: Path
    env_file: Path
    cache_dir: Path
    variables: dict[str, str]


def parse_env_file(content: str) -> dict[str, str]:
    """Parse KEY=VALUE lines, ignoring comments and blanks."""
    values: dict[str, str] = {}
    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        values[key.strip()] = value.strip().strip('"')
    return values


class BuildCacheCoordinator:
    """Points each worktree's build tool at the one shared cache directory."""

    def __init__(self, workspace: Workspace) -> None:
        self._workspace = workspace

    @property
    def cache_dir(self) -> Path:
        return self._workspace.build_cache_dir

    def resolved_cache_dir(self) -> Path:
        """The cache directory with symlinks resolved.

        Raises:
            PathEscapesWorkspace: If it resolves outside the workspace root
        """
        return self._workspace.require_contained(self.cache_dir)

    def render_variables(self, worktree_path: Path, branch: str | None) -> dict[str, str]:
        """Environment a worktree's build sees: cache variables plus the [env] template."""
        cache = self.resolved_cache_dir()
        config = self._workspace.config
        variables: dict[str, str] = {}
        for key, template in config.env.items():
            variables[key] = template.format(
                worktree_path=worktree_path,
                branch=branch or "",
                cache_dir=cache,
                root=self._workspace.root,
            )
        # Cache variables always win over the template
        for var in config.build_cache.env_vars:
            variables[var] = str(cache)
        return variables

    def bind(self, worktree_path: Path, *, branch: str | None = None) -> CacheBinding:
        """Write or repair the env file that points a worktree at the shared cache.

        Validation happens before anything is written.

        Raises:
            PathEscapesWorkspace: If the cache or the worktree resolves outside the root
        """
        cache = self.resolved_cache_dir()
        worktree = self._workspace.require_contained(worktree_path)
        variables = self.render_variables(worktree, branch)

        cache.mkdir(parents=True, exist_ok=True)
        env_file = worktree / self._workspace.config.build_cache.env_file

        preserved: list[str] = []
        if env_file.exists():
            for line in env_file.read_text(encoding="utf-8").splitlines():
                key = line.split("=", 1)[0].strip()
                if line.strip() == MANAGED_HEADER or key in variables:
                    continue
                preserved.append(line)

        lines = [MANAGED_HEADER]
        lines.extend(f"{key}={value}" for key, value in variables.items())
        lines.extend(preserved)
        env_file.write_text("\n".join(lines) + "\n", encoding="utf-8")
        logger.debug("Bound %s to build cache %s", worktree, cache)

        return CacheBinding(
            worktree_path=worktree, env_file=env_file, cache_dir=cache, variables=variables
        )

    def is_bound(self, worktree_path: Path) -> bool:
        """True if the worktree's env file points every cache variable at the shared cache."""
        env_file = worktree_path / self._workspace.config.build_cache.env_file
        if not env_file.exists():
            return False
        values = parse_env_file(env_file.read_text(encoding="utf-8"))
        cache = str(self.resolved_cache_dir())
        return all(values.get(var) == cache for var in self._workspace.config.build_cache.env_vars)

    def writer_lock_path(self, branch: str) -> Path:
        return self.cache_dir / WRITERS_DIRNAME / f"{branch_key(branch)}.lock"

    def is_build_active(self, branch: str) -> bool:
        """True while a build launched for `branch` is writing into the cache."""
        return is_locked(self.writer_lock_path(branch))

    def active_builds(self) -> list[str]:
        """Branch keys of every build currently holding a writer lock."""
        writers = self.cache_dir / WRITERS_DIRNAME
        if not writers.exists():
            return []
        return sorted(p.stem for p in writers.glob("*.lock") if is_locked(p))

    @contextmanager
    def _hold_writer_lock(self, branch: str, busy_message: str) -> Iterator[None]:
        stack = ExitStack()
        try:
            stack.enter_context(exclusive_lock(self.writer_lock_path(branch)))
        except LockBusy as e:
            raise ActiveOperation(branch, busy_message) from e
        with stack:
            yield

    @contextmanager
    def writer_session(self, branch: str) -> Iterator[Path]:
        """Mark `branch` as writing into the shared cache for the duration of the block.

        Raises:
            ActiveOperation: If another build for the same branch is already
                running, or the branch's worktree is being removed
        """
        self.resolved_cache_dir()
        with self._hold_writer_lock(branch, "a build or removal already holds the cache"):
            logger.debug("Build writer session opened: %s", branch)
            yield self.cache_dir

    @contextmanager
    def exclusive(self, branch: str) -> Iterator[None]:
        """Keep builds for `branch` out of the cache for the duration of the block.

        Raises:
            ActiveOperation: If a build for `branch` is writing right now
        """
        with self._hold_writer_lock(branch, "a build is writing into the shared build cache"):
            logger.debug("Build writers excluded: %s", branch)
            yield

    def run_build(self, branch: str, worktree_path: Path, command: list[str]) -> int:
        """Run a build command inside a worktree while holding its writer session.

        Returns:
            The command's exit code
        """
        variables = self.render_variables(worktree_path, branch)
        env = {**os.environ, **variables}
        with self.writer_session(branch):
            logger.debug("Running build in %s: %s", worktree_path, command)
            result = subprocess.run(command, cwd=worktree_path, env=env, check=False)
        return result.returncode

    def release(self, branch: str) -> None:
        """Remove a branch's idle writer lock file."""
        lock_path = self.writer_lock_path(branch)
        if lock_path.exists() and not is_locked(lock_path):
            lock_path.unlink()
