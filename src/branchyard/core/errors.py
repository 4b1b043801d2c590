"""Error kinds raised by the workspace orchestration core.

Every failure the core reports to a caller derives from WorkspaceError and
carries a stable ``kind`` string. The CLI renders these uniformly and the
JSON output uses ``kind`` as the machine-readable error code.

Validation failures (BranchInUse, InvalidBase, PathEscapesWorkspace,
ForbiddenRemote) are raised before any mutating action is taken.
"""

from pathlib import Path


class WorkspaceError(Exception):
    """Base class for all orchestration failures."""

    kind = "WorkspaceError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BranchInUse(WorkspaceError):
    kind = "BranchInUse"

    def __init__(self, branch: str, path: Path | None = None) -> None:
        if path is not None:
            message = f"Branch '{branch}' is already checked out at {path}"
        else:
            message = f"Branch '{branch}' is being allocated by another operation"
        super().__init__(message)
        self.branch = branch
        self.path = path


class InvalidBase(WorkspaceError):
    kind = "InvalidBase"

    def __init__(self, reference: str) -> None:
        super().__init__(f"Base reference '{reference}' does not resolve to a commit")
        self.reference = reference


class NotFound(WorkspaceError):
    kind = "NotFound"

    def __init__(self, branch: str, what: str = "worktree") -> None:
        super().__init__(f"No {what} exists for branch '{branch}'")
        self.branch = branch


class ActiveOperation(WorkspaceError):
    kind = "ActiveOperation"

    def __init__(self, branch: str, detail: str) -> None:
        super().__init__(f"Branch '{branch}' is busy: {detail}")
        self.branch = branch
        self.detail = detail


class PathEscapesWorkspace(WorkspaceError):
    kind = "PathEscapesWorkspace"

    def __init__(self, path: Path, root: Path) -> None:
        super().__init__(f"Path {path} resolves outside the workspace root {root}")
        self.path = path
        self.root = root


class ForbiddenRemote(WorkspaceError):
    kind = "ForbiddenRemote"

    def __init__(self, remote: str, operation: str, reason: str) -> None:
        super().__init__(f"Refusing {operation} to remote '{remote}': {reason}")
        self.remote = remote
        self.operation = operation


class ConflictDuringReplay(WorkspaceError):
    kind = "ConflictDuringReplay"

    def __init__(self, branch: str, commit_sha: str, paths: list[str]) -> None:
        joined = ", ".join(paths) if paths else "unknown paths"
        super().__init__(
            f"Replaying {commit_sha[:12]} onto the new base of '{branch}' conflicted in: {joined}"
        )
        self.branch = branch
        self.commit_sha = commit_sha
        self.paths = paths


class IllegalTransition(WorkspaceError):
    kind = "IllegalTransition"

    def __init__(self, branch: str, current: str, target: str) -> None:
        super().__init__(f"Worktree '{branch}' cannot move from {current} to {target}")
        self.branch = branch
        self.current = current
        self.target = target


class UncommittedChanges(WorkspaceError):
    kind = "UncommittedChanges"

    def __init__(self, branch: str, path: Path) -> None:
        super().__init__(
            f"Worktree '{branch}' at {path} has uncommitted changes; "
            "commit or stash them before retargeting"
        )
        self.branch = branch
        self.path = path


class InvalidRemoteBinding(WorkspaceError):
    kind = "InvalidRemoteBinding"


class WorkspaceUnreadable(WorkspaceError):
    """The workspace root itself cannot be read; no invariant can be guaranteed."""

    kind = "WorkspaceUnreadable"

    def __init__(self, root: Path, reason: str) -> None:
        super().__init__(f"Cannot read workspace root {root}: {reason}")
        self.root = root
