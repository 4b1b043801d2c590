"""Persisted worktree entries, one JSON file per branch.

Each branch owns its own entry file, so writing one entry never needs a lock
shared with other branches. Entries are a cache of what the filesystem and
git already know; WorktreeLifecycleManager reconciles them on every listing.
"""

import json
import logging
import os
import tempfile
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from branchyard.core.naming import branch_from_key, branch_key
from branchyard.core.states import WorktreeState

logger = logging.getLogger(__name__)


def write_json_atomic(path: Path, data: dict[str, Any]) -> None:
    """Write JSON via a temporary file and rename so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        json.dump(data, handle, indent=2, sort_keys=True)
        handle.write("\n")
    os.replace(tmp_name, path)


def read_json(path: Path) -> dict[str, Any] | None:
    if not path.exists():
        return None
    return json.loads(path.read_text(encoding="utf-8"))


@dataclass(frozen=True)
class WorktreeRecord:
    """One worktree known to the workspace.

    `orphaned` and `adopted` are never persisted; they are computed while
    reconciling entries against the filesystem and git metadata.
    """

    branch: str
    path: Path
    state: WorktreeState
    base_ref: str | None
    base_sha: str | None
    created_at: str | None
    orphaned: bool = False
    adopted: bool = False

    def to_json_dict(self) -> dict[str, Any]:
        return {
            "branch": self.branch,
            "path": str(self.path),
            "state": self.state.value,
            "base_ref": self.base_ref,
            "base_sha": self.base_sha,
            "created_at": self.created_at,
        }

    @classmethod
    def from_json_dict(cls, data: dict[str, Any]) -> "WorktreeRecord":
        return cls(
            branch=data["branch"],
            path=Path(data["path"]),
            state=WorktreeState(data["state"]),
            base_ref=data.get("base_ref"),
            base_sha=data.get("base_sha"),
            created_at=data.get("created_at"),
        )


class RecordStore:
    """Directory of per-branch entry files."""

    def __init__(self, registry_dir: Path) -> None:
        self._dir = registry_dir

    def _path_for(self, branch: str) -> Path:
        return self._dir / f"{branch_key(branch)}.json"

    def load(self, branch: str) -> WorktreeRecord | None:
        data = read_json(self._path_for(branch))
        if data is None:
            return None
        return WorktreeRecord.from_json_dict(data)

    def save(self, record: WorktreeRecord) -> None:
        logger.debug("Registry write: %s -> %s", record.branch, record.state.value)
        write_json_atomic(self._path_for(record.branch), record.to_json_dict())

    def delete(self, branch: str) -> bool:
        path = self._path_for(branch)
        if not path.exists():
            return False
        path.unlink()
        logger.debug("Registry delete: %s", branch)
        return True

    def iter_records(self) -> Iterator[WorktreeRecord]:
        """Yield every persisted entry in branch-name order."""
        if not self._dir.exists():
            return
        for entry_path in sorted(self._dir.glob("*.json"), key=lambda p: branch_from_key(p.stem)):
            data = read_json(entry_path)
            if data is None:
                # Removed between glob and read
                continue
            yield WorktreeRecord.from_json_dict(data)
