"""Parsing helpers for gh CLI output and GitHub URLs.

All functions are pure (no I/O).
"""

import json
import re
from typing import Any

from branchyard.core.github.types import PullRequestInfo

_PR_URL_NUMBER = re.compile(r"/pull/(\d+)$")
_OWNER_PATTERNS = (
    re.compile(r"^https?://[^/]+/([^/]+)/[^/]+?(?:\.git)?/?$"),
    re.compile(r"^git@[^:]+:([^/]+)/[^/]+?(?:\.git)?$"),
    re.compile(r"^ssh://git@[^/]+/([^/]+)/[^/]+?(?:\.git)?$"),
)


def parse_remote_owner(url: str) -> str | None:
    """Extract the owner from a GitHub remote URL.

    Examples:
        >>> parse_remote_owner("https://github.com/me/project.git")
        "me"
        >>> parse_remote_owner("git@github.com:me/project.git")
        "me"
    """
    for pattern in _OWNER_PATTERNS:
        match = pattern.match(url.strip())
        if match:
            return match.group(1)
    return None


def parse_pr_number_from_url(url: str) -> int | None:
    """Parse the PR number from the URL `gh pr create` prints."""
    match = _PR_URL_NUMBER.search(url.strip())
    if match is None:
        return None
    return int(match.group(1))


def _pr_from_json(pr: dict[str, Any]) -> PullRequestInfo:
    labels = tuple(label["name"] for label in pr.get("labels", []) if "name" in label)
    return PullRequestInfo(
        number=pr["number"],
        state=pr["state"],
        url=pr["url"],
        title=pr.get("title", ""),
        head_ref=pr.get("headRefName", ""),
        base_ref=pr.get("baseRefName", ""),
        is_draft=bool(pr.get("isDraft", False)),
        labels=labels,
    )


def parse_pr_list(json_str: str) -> list[PullRequestInfo]:
    """Parse `gh pr list --json ...` output."""
    return [_pr_from_json(pr) for pr in json.loads(json_str)]


def parse_label_names(json_str: str) -> list[str]:
    """Parse `gh pr view --json labels` output."""
    data = json.loads(json_str)
    return [label["name"] for label in data.get("labels", []) if "name" in label]


def parse_commit_pulls(json_str: str) -> list[int]:
    """Parse the REST response of `repos/{owner}/{repo}/commits/{sha}/pulls`."""
    return [pr["number"] for pr in json.loads(json_str) if "number" in pr]
