"""Application context with dependency injection."""

from dataclasses import dataclass
from pathlib import Path

from branchyard.core.config import GlobalConfig, load_global_config
from branchyard.core.git.abc import Git
from branchyard.core.git.dry_run import DryRunGit
from branchyard.core.git.real import RealGit
from branchyard.core.github.abc import GitHub
from branchyard.core.github.dry_run import DryRunGitHub
from branchyard.core.github.real import RealGitHub
from branchyard.core.registry import WorkspaceRegistry
from branchyard.core.workspace import find_workspace_root


@dataclass(frozen=True)
class BranchyardContext:
    """Immutable context holding all dependencies for branchyard operations.

    Created at CLI entry point and threaded through the application.
    Frozen to prevent accidental modification at runtime.

    `registry` is None when the command runs outside any workspace; only
    `init` works in that case.
    """

    git: Git
    github: GitHub
    cwd: Path  # Current working directory at CLI invocation
    global_config: GlobalConfig
    registry: WorkspaceRegistry | None
    dry_run: bool

    @staticmethod
    def for_test(
        git: Git,
        github: GitHub,
        *,
        cwd: Path,
        registry: WorkspaceRegistry | None = None,
        global_config: GlobalConfig | None = None,
        dry_run: bool = False,
    ) -> "BranchyardContext":
        """Build a context around pre-configured fakes."""
        return BranchyardContext(
            git=git,
            github=github,
            cwd=cwd,
            global_config=global_config or GlobalConfig(workspace_root=None, show_pr_info=False),
            registry=registry,
            dry_run=dry_run,
        )


def resolve_workspace_root(
    cwd: Path, explicit: Path | None, global_config: GlobalConfig
) -> Path | None:
    """Pick the workspace: --workspace, then the enclosing workspace, then the global default."""
    if explicit is not None:
        return explicit
    found = find_workspace_root(cwd)
    if found is not None:
        return found
    return global_config.workspace_root


def create_context(
    *, dry_run: bool, workspace_root: Path | None = None, open_registry: bool = True
) -> BranchyardContext:
    """Create production context with real implementations.

    Args:
        dry_run: If True, wrap git and GitHub with dry-run wrappers that print
            intended writes without executing them
        workspace_root: Explicit workspace root, overriding discovery
        open_registry: False for commands that create the workspace themselves

    Raises:
        WorkspaceUnreadable: If the chosen workspace root cannot be read
    """
    cwd = Path.cwd()
    global_config = load_global_config()

    git: Git = RealGit()
    github: GitHub = RealGitHub()
    if dry_run:
        git = DryRunGit(git)
        github = DryRunGitHub(github)

    root = resolve_workspace_root(cwd, workspace_root, global_config)
    registry = None
    if open_registry and root is not None:
        registry = WorkspaceRegistry.open(root, git)

    return BranchyardContext(
        git=git,
        github=github,
        cwd=cwd,
        global_config=global_config,
        registry=registry,
        dry_run=dry_run,
    )
