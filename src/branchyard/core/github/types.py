"""Types returned by the code-hosting API."""

from dataclasses import dataclass
from typing import Literal

PRState = Literal["OPEN", "MERGED", "CLOSED"]


@dataclass(frozen=True)
class PullRequestInfo:
    """Information about a GitHub pull request."""

    number: int
    state: PRState
    url: str
    title: str
    head_ref: str
    base_ref: str
    is_draft: bool
    labels: tuple[str, ...] = ()
