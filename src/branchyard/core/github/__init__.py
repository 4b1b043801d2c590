"""Code-hosting API subpackage (GitHub via the gh CLI)."""

from branchyard.core.github.abc import GitHub
from branchyard.core.github.dry_run import DryRunGitHub
from branchyard.core.github.real import RealGitHub
from branchyard.core.github.types import PullRequestInfo

__all__ = [
    "DryRunGitHub",
    "GitHub",
    "PullRequestInfo",
    "RealGitHub",
]
