"""Naming utilities for worktree directories and metadata files.

All functions are pure (no I/O).
"""

import hashlib
import re
from urllib.parse import quote, unquote

_HASH_SUFFIX = re.compile(r"-[0-9a-f]{8}$")


def sanitize_worktree_name(name: str) -> str:
    """Sanitize a branch name for use as a directory name.

    - Lowercases input
    - Replaces underscores with hyphens
    - Replaces characters outside `[a-z0-9.-]` with `-`
    - Collapses consecutive `-`
    - Strips leading/trailing `-`
    - Truncates to 30 characters maximum
    Returns `"work"` if the result is empty.

    Examples:
        >>> sanitize_worktree_name("My_Feature")
        "my-feature"
        >>> sanitize_worktree_name("feat/x")
        "feat-x"
    """
    lowered = name.strip().lower()
    replaced_underscores = lowered.replace("_", "-")
    replaced = re.sub(r"[^a-z0-9.-]+", "-", replaced_underscores)
    collapsed = re.sub(r"-+", "-", replaced)
    trimmed = collapsed.strip("-").strip(".")
    result = trimmed or "work"

    if len(result) > 30:
        result = result[:30].rstrip("-")

    return result


def worktree_dir_name(branch: str) -> str:
    """Directory name for the worktree holding `branch`.

    Branch names that are already filesystem-safe are used as-is. Anything
    lossy (slashes, capitals, truncation) gets a short hash of the full branch
    name appended, so two branches never map to the same directory. A safe
    name that already ends in something hash-shaped is suffixed too, so it
    cannot take the directory of a hashed name.

    Examples:
        >>> worktree_dir_name("feat-x")
        "feat-x"
        >>> worktree_dir_name("feat/x")
        "feat-x-" followed by 8 hex digits
    """
    sanitized = sanitize_worktree_name(branch)
    if sanitized == branch and not _HASH_SUFFIX.search(sanitized):
        return sanitized
    digest = hashlib.sha1(branch.encode("utf-8")).hexdigest()[:8]
    return f"{sanitized}-{digest}"


def branch_key(branch: str) -> str:
    """Reversible filename-safe key for per-branch metadata files."""
    return quote(branch, safe="")


def branch_from_key(key: str) -> str:
    """Inverse of branch_key()."""
    return unquote(key)


def backup_ref_for(branch: str) -> str:
    """Ref recording a branch's pre-retarget head."""
    return f"refs/branchyard/backup/{branch}"
