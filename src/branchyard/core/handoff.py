"""Hand-off of staged, unsigned work to the external signing authority.

This environment cannot sign commits or push. When a retarget finishes its
replay, a manifest describes what is staged and, if a fork is bound, the push
the signer is allowed to perform. The signer finalizes and pushes on its own
host, then reports back with `finalize`.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from branchyard.core.git.abc import CommitInfo
from branchyard.core.naming import branch_key
from branchyard.core.operations import commit_from_json, commit_to_json
from branchyard.core.records import read_json, write_json_atomic
from branchyard.core.remote_policy import OperationKind, RemoteAccessPolicy


@dataclass(frozen=True)
class PushRequest:
    """A push the signer may perform, already approved by RemoteAccessPolicy."""

    remote: str
    url: str
    branch: str
    # Retargeting rewrites history, so the signer must use --force-with-lease
    force_with_lease: bool = True


@dataclass(frozen=True)
class HandoffManifest:
    branch: str
    worktree_path: Path
    new_base_ref: str
    new_base_sha: str
    original_base_ref: str | None
    original_base_sha: str
    original_head_sha: str
    commits: tuple[CommitInfo, ...]
    staged_paths: tuple[str, ...]
    push_request: PushRequest | None
    created_at: str

    def to_json_dict(self) -> dict[str, Any]:
        push = None
        if self.push_request is not None:
            push = {
                "remote": self.push_request.remote,
                "url": self.push_request.url,
                "branch": self.push_request.branch,
                "force_with_lease": self.push_request.force_with_lease,
            }
        return {
            "branch": self.branch,
            "worktree_path": str(self.worktree_path),
            "new_base_ref": self.new_base_ref,
            "new_base_sha": self.new_base_sha,
            "original_base_ref": self.original_base_ref,
            "original_base_sha": self.original_base_sha,
            "original_head_sha": self.original_head_sha,
            "commits": [commit_to_json(c) for c in self.commits],
            "staged_paths": list(self.staged_paths),
            "push_request": push,
            "created_at": self.created_at,
        }

    @classmethod
    def from_json_dict(cls, data: dict[str, Any]) -> "HandoffManifest":
        push_data = data.get("push_request")
        push = None
        if push_data is not None:
            push = PushRequest(
                remote=push_data["remote"],
                url=push_data["url"],
                branch=push_data["branch"],
                force_with_lease=bool(push_data.get("force_with_lease", True)),
            )
        return cls(
            branch=data["branch"],
            worktree_path=Path(data["worktree_path"]),
            new_base_ref=data["new_base_ref"],
            new_base_sha=data["new_base_sha"],
            original_base_ref=data.get("original_base_ref"),
            original_base_sha=data["original_base_sha"],
            original_head_sha=data["original_head_sha"],
            commits=tuple(commit_from_json(c) for c in data.get("commits", [])),
            staged_paths=tuple(data.get("staged_paths", [])),
            push_request=push,
            created_at=data["created_at"],
        )


def build_push_request(policy: RemoteAccessPolicy, branch: str) -> PushRequest | None:
    """Describe the push the signer may perform, or None when no fork is bound.

    Raises:
        ForbiddenRemote: If the fork binding does not pass the policy
    """
    fork = policy.fork_binding()
    if fork is None:
        return None
    policy.authorize(fork.name, OperationKind.PUSH)
    return PushRequest(remote=fork.name, url=fork.url, branch=branch)


class HandoffStore:
    """Manifests awaiting the external signer, one file per branch."""

    def __init__(self, handoffs_dir: Path) -> None:
        self._dir = handoffs_dir

    def path_for(self, branch: str) -> Path:
        return self._dir / f"{branch_key(branch)}.json"

    def write(self, manifest: HandoffManifest) -> Path:
        path = self.path_for(manifest.branch)
        write_json_atomic(path, manifest.to_json_dict())
        return path

    def load(self, branch: str) -> HandoffManifest | None:
        data = read_json(self.path_for(branch))
        if data is None:
            return None
        return HandoffManifest.from_json_dict(data)

    def list_manifests(self) -> list[HandoffManifest]:
        if not self._dir.exists():
            return []
        return [
            HandoffManifest.from_json_dict(data)
            for p in sorted(self._dir.glob("*.json"))
            if (data := read_json(p)) is not None
        ]

    def discard(self, branch: str) -> bool:
        path = self.path_for(branch)
        if not path.exists():
            return False
        path.unlink()
        return True
