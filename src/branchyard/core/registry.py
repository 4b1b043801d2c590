"""The workspace registry: one object wiring every component to one Workspace.

Callers (the CLI, automation scripts) construct a WorkspaceRegistry once at
process start, either for a new root with initialize() or for an existing
root with open(), and use its components for the rest of the process.

The persisted inventory is re-derivable: inventory() reconciles registry
entries with git and the filesystem, and reconcile() writes back entries for
worktrees that exist on disk but were never recorded.
"""

import logging
from dataclasses import dataclass, replace
from pathlib import Path

from branchyard.core.build_cache import BuildCacheCoordinator
from branchyard.core.config import (
    WORKSPACE_CONFIG_FILENAME,
    WorkspaceConfig,
    load_workspace_config,
    save_workspace_config,
)
from branchyard.core.errors import ActiveOperation, WorkspaceError, WorkspaceUnreadable
from branchyard.core.git.abc import Git
from branchyard.core.handoff import HandoffManifest, HandoffStore
from branchyard.core.locking import BranchLocks
from branchyard.core.operations import OperationStore, RetargetOperation
from branchyard.core.records import RecordStore, WorktreeRecord
from branchyard.core.remote_policy import (
    Permission,
    RemoteAccessPolicy,
    RemoteBinding,
    RemoteRole,
)
from branchyard.core.repository import RepositoryHandle
from branchyard.core.retarget import RetargetController
from branchyard.core.workspace import Workspace, open_workspace
from branchyard.core.worktrees import WorktreeLifecycleManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkspaceInventory:
    """Point-in-time snapshot of everything the workspace holds."""

    root: Path
    repository: Path
    build_cache: Path
    trunk_branch: str
    worktrees: list[WorktreeRecord]
    retargets: list[RetargetOperation]
    handoffs: list[HandoffManifest]
    active_builds: list[str]

    @property
    def orphaned(self) -> list[WorktreeRecord]:
        return [wt for wt in self.worktrees if wt.orphaned]


class WorkspaceRegistry:
    """Root of the orchestration core for one workspace."""

    def __init__(self, workspace: Workspace, git: Git) -> None:
        self.workspace = workspace
        self.repository = RepositoryHandle(path=workspace.repo_path, git=git)
        self.records = RecordStore(workspace.registry_dir)
        self.locks = BranchLocks(workspace.locks_dir)
        self.cache = BuildCacheCoordinator(workspace)
        self.operations = OperationStore(workspace.retargets_dir)
        self.handoffs = HandoffStore(workspace.handoffs_dir)
        self.policy = RemoteAccessPolicy(workspace.config.remotes)
        self.worktrees = WorktreeLifecycleManager(
            workspace=workspace,
            repository=self.repository,
            records=self.records,
            locks=self.locks,
            cache=self.cache,
            operations=self.operations,
            handoffs=self.handoffs,
        )
        self.retargets = RetargetController(
            repository=self.repository,
            manager=self.worktrees,
            records=self.records,
            locks=self.locks,
            operations=self.operations,
            handoffs=self.handoffs,
            policy=self.policy,
        )

    @property
    def git(self) -> Git:
        return self.repository.git

    @classmethod
    def open(cls, root: Path, git: Git) -> "WorkspaceRegistry":
        """Open an initialized workspace.

        Raises:
            WorkspaceUnreadable: If the root cannot be read or holds no shared repository
            InvalidRemoteBinding: If the configured remotes violate their invariants
            PathEscapesWorkspace: If the configured layout leaves the root
        """
        workspace = open_workspace(root)
        if git.get_git_common_dir(workspace.repo_path) is None:
            raise WorkspaceUnreadable(
                workspace.root, f"no shared repository at {workspace.repo_path}"
            )
        workspace.ensure_layout()
        return cls(workspace, git)

    @classmethod
    def initialize(
        cls,
        root: Path,
        git: Git,
        *,
        clone_url: str | None = None,
        adopt: Path | None = None,
        config: WorkspaceConfig | None = None,
    ) -> "WorkspaceRegistry":
        """Create the workspace layout and its shared repository.

        Re-running initialize() on an existing workspace keeps its config and
        only creates what is missing.

        Args:
            root: Workspace root directory (created if missing)
            git: Git implementation
            clone_url: Clone the shared repository from this URL
            adopt: Use an existing repository inside the root instead of cloning
            config: Config to write when the root has none yet

        Raises:
            WorkspaceError: If both or neither source is usable
            PathEscapesWorkspace: If `adopt` lies outside the root
        """
        if clone_url is not None and adopt is not None:
            raise WorkspaceError("Pass either a clone URL or a repository to adopt, not both")

        root = root.expanduser()
        root.mkdir(parents=True, exist_ok=True)
        root = root.resolve()

        if (root / WORKSPACE_CONFIG_FILENAME).exists():
            ws_config = load_workspace_config(root)
        else:
            ws_config = config if config is not None else WorkspaceConfig()

        if adopt is not None:
            repo_path = Workspace(root=root).require_contained(adopt)
            if git.get_git_common_dir(repo_path) is None:
                raise WorkspaceError(f"{repo_path} is not a git repository")
            ws_config = replace(ws_config, repository_dir=str(repo_path.relative_to(root)))

        if clone_url is not None and not ws_config.remotes:
            upstream = RemoteBinding(
                name="origin",
                url=clone_url,
                permission=Permission.READ_ONLY,
                role=RemoteRole.UPSTREAM,
            )
            ws_config = replace(ws_config, remotes=(upstream,))

        workspace = Workspace(root=root, config=ws_config)
        workspace.require_contained(workspace.build_cache_dir)
        workspace.require_contained(workspace.worktrees_dir)

        if clone_url is not None and not git.path_exists(workspace.repo_path):
            logger.debug("Cloning %s into %s", clone_url, workspace.repo_path)
            git.clone(clone_url, workspace.repo_path)
        elif adopt is None and git.get_git_common_dir(workspace.repo_path) is None:
            raise WorkspaceError(
                f"No repository at {workspace.repo_path}; pass a clone URL or a repository to adopt"
            )

        save_workspace_config(root, ws_config)
        workspace.ensure_layout()
        logger.debug("Initialized workspace at %s", root)
        return cls(workspace, git)

    def trunk_branch(self) -> str:
        return self.repository.trunk_branch(self.workspace.config.trunk_branch)

    def inventory(self) -> WorkspaceInventory:
        return WorkspaceInventory(
            root=self.workspace.root,
            repository=self.repository.path,
            build_cache=self.cache.cache_dir,
            trunk_branch=self.trunk_branch(),
            worktrees=list(self.worktrees.list_worktrees()),
            retargets=self.operations.list_operations(),
            handoffs=self.handoffs.list_manifests(),
            active_builds=self.cache.active_builds(),
        )

    def reconcile(self) -> int:
        """Persist entries for worktrees found on disk without one.

        Branches held by an in-flight operation are skipped and picked up by a
        later reconcile.

        Returns:
            Number of entries written
        """
        adopted = [wt for wt in self.worktrees.list_worktrees() if wt.adopted]
        written = 0
        for record in adopted:
            busy = ActiveOperation(record.branch, "another operation is in progress")
            try:
                with self.locks.hold(record.branch, busy):
                    current = self.worktrees.get(record.branch)
                    if current is None or not current.adopted:
                        continue
                    self.records.save(replace(current, adopted=False))
                    written += 1
                    logger.debug("Adopted untracked worktree %s at %s", record.branch, record.path)
            except ActiveOperation:
                logger.debug("Skipping adoption of %s: branch is busy", record.branch)
        return written
