"""Git operations subpackage.

This subpackage provides abstractions over git operations with support for
testing via fakes and dry-run via wrappers.
"""

from branchyard.core.git.abc import CherryPickResult, CommitInfo, Git, WorktreeInfo
from branchyard.core.git.dry_run import DryRunGit
from branchyard.core.git.real import RealGit

__all__ = [
    "CherryPickResult",
    "CommitInfo",
    "DryRunGit",
    "Git",
    "RealGit",
    "WorktreeInfo",
]
