"""Retarget operation records.

A RetargetOperation exists on disk only while it is unresolved (pending or
conflicted). Reaching a terminal outcome discards the record.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from branchyard.core.errors import ConflictDuringReplay
from branchyard.core.git.abc import CommitInfo
from branchyard.core.naming import branch_key
from branchyard.core.records import read_json, write_json_atomic


class RetargetOutcome(Enum):
    PENDING = "pending"
    REPLAYED_UNSIGNED = "replayed-unsigned"
    CONFLICTED = "conflicted"
    ABORTED = "aborted"


def commit_to_json(commit: CommitInfo) -> dict[str, str]:
    return {
        "sha": commit.sha,
        "subject": commit.subject,
        "body": commit.body,
        "author_name": commit.author_name,
        "author_email": commit.author_email,
        "authored_at": commit.authored_at,
    }


def commit_from_json(data: dict[str, str]) -> CommitInfo:
    return CommitInfo(
        sha=data["sha"],
        subject=data["subject"],
        body=data.get("body", ""),
        author_name=data.get("author_name", ""),
        author_email=data.get("author_email", ""),
        authored_at=data.get("authored_at", ""),
    )


@dataclass(frozen=True)
class RetargetOperation:
    """Everything needed to replay, or to undo, one retarget."""

    branch: str
    worktree_path: Path
    original_base_ref: str | None
    original_base_sha: str
    original_head_sha: str
    new_base_ref: str
    new_base_sha: str
    commits: tuple[CommitInfo, ...]
    outcome: RetargetOutcome
    started_at: str
    applied: tuple[str, ...] = ()
    conflict_sha: str | None = None
    conflicted_paths: tuple[str, ...] = ()

    def conflict_error(self) -> ConflictDuringReplay:
        return ConflictDuringReplay(
            self.branch, self.conflict_sha or "", list(self.conflicted_paths)
        )

    def to_json_dict(self) -> dict[str, Any]:
        return {
            "branch": self.branch,
            "worktree_path": str(self.worktree_path),
            "original_base_ref": self.original_base_ref,
            "original_base_sha": self.original_base_sha,
            "original_head_sha": self.original_head_sha,
            "new_base_ref": self.new_base_ref,
            "new_base_sha": self.new_base_sha,
            "commits": [commit_to_json(c) for c in self.commits],
            "outcome": self.outcome.value,
            "started_at": self.started_at,
            "applied": list(self.applied),
            "conflict_sha": self.conflict_sha,
            "conflicted_paths": list(self.conflicted_paths),
        }

    @classmethod
    def from_json_dict(cls, data: dict[str, Any]) -> "RetargetOperation":
        return cls(
            branch=data["branch"],
            worktree_path=Path(data["worktree_path"]),
            original_base_ref=data.get("original_base_ref"),
            original_base_sha=data["original_base_sha"],
            original_head_sha=data["original_head_sha"],
            new_base_ref=data["new_base_ref"],
            new_base_sha=data["new_base_sha"],
            commits=tuple(commit_from_json(c) for c in data.get("commits", [])),
            outcome=RetargetOutcome(data["outcome"]),
            started_at=data["started_at"],
            applied=tuple(data.get("applied", [])),
            conflict_sha=data.get("conflict_sha"),
            conflicted_paths=tuple(data.get("conflicted_paths", [])),
        )


class OperationStore:
    """Unresolved retarget operations, one file per branch."""

    def __init__(self, retargets_dir: Path) -> None:
        self._dir = retargets_dir

    def _path_for(self, branch: str) -> Path:
        return self._dir / f"{branch_key(branch)}.json"

    def load(self, branch: str) -> RetargetOperation | None:
        data = read_json(self._path_for(branch))
        if data is None:
            return None
        return RetargetOperation.from_json_dict(data)

    def save(self, operation: RetargetOperation) -> None:
        write_json_atomic(self._path_for(operation.branch), operation.to_json_dict())

    def discard(self, branch: str) -> None:
        path = self._path_for(branch)
        if path.exists():
            path.unlink()

    def list_operations(self) -> list[RetargetOperation]:
        if not self._dir.exists():
            return []
        return [
            RetargetOperation.from_json_dict(data)
            for p in sorted(self._dir.glob("*.json"))
            if (data := read_json(p)) is not None
        ]
