"""The explicit workspace value every component is constructed with.

A workspace root holds the shared repository, the shared build cache, one
directory per worktree and the orchestrator's metadata. Nothing in the core
reads an ambient directory; callers build a Workspace once and pass it in.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from branchyard.core.config import (
    WORKSPACE_CONFIG_FILENAME,
    WorkspaceConfig,
    load_workspace_config,
)
from branchyard.core.errors import PathEscapesWorkspace, WorkspaceUnreadable
from branchyard.core.naming import worktree_dir_name

METADATA_DIRNAME = ".branchyard"


@dataclass(frozen=True)
class Workspace:
    """Root context: where the shared repository, cache and worktrees live."""

    root: Path
    config: WorkspaceConfig = field(default_factory=WorkspaceConfig)

    @property
    def repo_path(self) -> Path:
        return self.root / self.config.repository_dir

    @property
    def build_cache_dir(self) -> Path:
        return self.root / self.config.build_cache.directory

    @property
    def worktrees_dir(self) -> Path:
        return self.root / self.config.worktrees_dir

    @property
    def metadata_dir(self) -> Path:
        return self.root / METADATA_DIRNAME

    @property
    def registry_dir(self) -> Path:
        return self.metadata_dir / "registry"

    @property
    def retargets_dir(self) -> Path:
        return self.metadata_dir / "retargets"

    @property
    def handoffs_dir(self) -> Path:
        return self.metadata_dir / "handoffs"

    @property
    def locks_dir(self) -> Path:
        return self.metadata_dir / "locks"

    def worktree_path_for(self, branch: str) -> Path:
        return self.worktrees_dir / worktree_dir_name(branch)

    def contains(self, path: Path) -> bool:
        """True if `path`, with symlinks resolved, lies inside the workspace root."""
        return path.resolve().is_relative_to(self.root.resolve())

    def require_contained(self, path: Path) -> Path:
        """Return the resolved path, or raise if it escapes the workspace root.

        Raises:
            PathEscapesWorkspace: If the resolved path is outside the root
        """
        resolved = path.resolve()
        if not resolved.is_relative_to(self.root.resolve()):
            raise PathEscapesWorkspace(resolved, self.root.resolve())
        return resolved

    def ensure_layout(self) -> None:
        """Create the cache, worktrees and metadata directories if missing."""
        for directory in (
            self.build_cache_dir,
            self.worktrees_dir,
            self.registry_dir,
            self.retargets_dir,
            self.handoffs_dir,
            self.locks_dir,
        ):
            directory.mkdir(parents=True, exist_ok=True)


def open_workspace(root: Path) -> Workspace:
    """Build the Workspace for an existing root, loading its config.

    Raises:
        WorkspaceUnreadable: If the root is missing or cannot be read
        PathEscapesWorkspace: If the configured build cache or worktrees
            directory resolves outside the root
    """
    root = root.expanduser()
    if not root.is_dir():
        raise WorkspaceUnreadable(root, "not a directory")
    if not os.access(root, os.R_OK | os.X_OK):
        raise WorkspaceUnreadable(root, "permission denied")

    resolved = root.resolve()
    workspace = Workspace(root=resolved, config=load_workspace_config(resolved))
    workspace.require_contained(workspace.build_cache_dir)
    workspace.require_contained(workspace.worktrees_dir)
    return workspace


def find_workspace_root(start: Path) -> Path | None:
    """Walk up from `start` to the nearest directory holding branchyard.toml."""
    if not start.exists():
        return None
    cur = start.resolve()
    for parent in [cur, *cur.parents]:
        if (parent / WORKSPACE_CONFIG_FILENAME).is_file():
            return parent
    return None
