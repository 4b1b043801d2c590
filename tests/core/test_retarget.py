"""Tests for RetargetController.

The standard history puts feat-y (y1, y2) on top of unstable (u1). release-9
does not touch lib.txt; release-9-conflicting changes it to a value that
clashes with y2.
"""

from pathlib import Path

import pytest

from branchyard.core.errors import (
    ActiveOperation,
    ConflictDuringReplay,
    IllegalTransition,
    InvalidBase,
    NotFound,
    UncommittedChanges,
)
from branchyard.core.operations import RetargetOutcome
from branchyard.core.remote_policy import RemoteBinding
from branchyard.core.states import WorktreeState
from tests.fakes.git import CONFLICT_MARKER
from tests.test_utils.workspace_env import FORK, UPSTREAM, WorkspaceEnv, build_workspace

BACKUP_REF = "refs/branchyard/backup/feat-y"


def _with_feat_y(
    tmp_path: Path, remotes: tuple[RemoteBinding, ...] = (UPSTREAM, FORK)
) -> tuple[WorkspaceEnv, Path]:
    env = build_workspace(tmp_path, remotes=remotes)
    record = env.registry.worktrees.create("feat-y", "unstable")
    return env, record.path


def test_begin_records_pending_operation_without_touching_worktree(tmp_path: Path) -> None:
    env, path = _with_feat_y(tmp_path)

    operation = env.registry.retargets.begin_retarget("feat-y", "release-9")

    assert operation.outcome is RetargetOutcome.PENDING
    assert operation.original_head_sha == "y2"
    assert operation.original_base_sha == "u1"
    assert operation.new_base_sha == "r1"
    assert [c.sha for c in operation.commits] == ["y1", "y2"]
    assert env.git.resets == []
    assert env.git.refs[BACKUP_REF] == "y2"

    record = env.registry.records.load("feat-y")
    assert record is not None
    assert record.state is WorktreeState.RETARGETING


def test_replay_stages_changes_without_committing(tmp_path: Path) -> None:
    env, path = _with_feat_y(tmp_path)
    commits_before = env.git.commit_count
    env.registry.retargets.begin_retarget("feat-y", "release-9")

    operation = env.registry.retargets.replay("feat-y")

    assert operation.outcome is RetargetOutcome.REPLAYED_UNSIGNED
    assert operation.applied == ("y1", "y2")
    assert env.git.commit_count == commits_before
    assert env.git.branch_head("feat-y") == "r1"
    assert env.git.list_staged_files(path) == ["feature.txt", "lib.txt"]
    index = env.git.index_of(path)
    assert index["release.txt"] == "9"
    assert index["lib.txt"] == "v2"
    assert [sha for _, sha in env.git.cherry_picks] == ["y1", "y2"]


def test_replay_writes_handoff_and_records_new_base(tmp_path: Path) -> None:
    env, path = _with_feat_y(tmp_path)
    env.registry.retargets.begin_retarget("feat-y", "release-9")

    env.registry.retargets.replay("feat-y")

    manifest = env.registry.handoffs.load("feat-y")
    assert manifest is not None
    assert manifest.new_base_ref == "release-9"
    assert manifest.original_head_sha == "y2"
    assert manifest.staged_paths == ("feature.txt", "lib.txt")
    assert [c.subject for c in manifest.commits] == ["Add feature", "Bump lib"]
    assert manifest.push_request is not None
    assert manifest.push_request.remote == "fork"
    assert manifest.push_request.force_with_lease

    assert env.registry.operations.load("feat-y") is None
    record = env.registry.records.load("feat-y")
    assert record is not None
    assert record.state is WorktreeState.ACTIVE
    assert record.base_ref == "release-9"
    assert record.base_sha == "r1"
    # Kept until the signer finalizes
    assert env.git.refs[BACKUP_REF] == "y2"


def test_replay_without_fork_hands_off_without_push_request(tmp_path: Path) -> None:
    env, _ = _with_feat_y(tmp_path, remotes=(UPSTREAM,))
    env.registry.retargets.begin_retarget("feat-y", "release-9")

    env.registry.retargets.replay("feat-y")

    manifest = env.registry.handoffs.load("feat-y")
    assert manifest is not None
    assert manifest.push_request is None


def test_replay_conflict_leaves_worktree_conflicted(tmp_path: Path) -> None:
    env, path = _with_feat_y(tmp_path)
    env.registry.retargets.begin_retarget("feat-y", "release-9-conflicting")

    operation = env.registry.retargets.replay("feat-y")

    assert operation.outcome is RetargetOutcome.CONFLICTED
    assert operation.applied == ("y1",)
    assert operation.conflict_sha == "y2"
    assert operation.conflicted_paths == ("lib.txt",)
    assert env.git.index_of(path)["lib.txt"] == CONFLICT_MARKER
    assert env.registry.handoffs.load("feat-y") is None

    record = env.registry.records.load("feat-y")
    assert record is not None
    assert record.state is WorktreeState.CONFLICTED

    error = operation.conflict_error()
    assert isinstance(error, ConflictDuringReplay)
    assert error.paths == ["lib.txt"]


def test_abort_after_conflict_restores_original_head_and_base(tmp_path: Path) -> None:
    env, path = _with_feat_y(tmp_path)
    env.registry.retargets.begin_retarget("feat-y", "release-9-conflicting")
    env.registry.retargets.replay("feat-y")

    aborted = env.registry.retargets.abort("feat-y")

    assert aborted is not None
    assert aborted.outcome is RetargetOutcome.ABORTED
    assert env.git.branch_head("feat-y") == "y2"
    assert not env.git.has_uncommitted_changes(path)
    assert env.git.index_of(path) == env.git.tree_of("y2")
    assert BACKUP_REF not in env.git.refs
    assert env.registry.operations.load("feat-y") is None

    record = env.registry.records.load("feat-y")
    assert record is not None
    assert record.state is WorktreeState.ACTIVE
    assert record.base_ref == "unstable"
    assert record.base_sha == "u1"


def test_abort_pending_operation(tmp_path: Path) -> None:
    env, _ = _with_feat_y(tmp_path)
    env.registry.retargets.begin_retarget("feat-y", "release-9")

    aborted = env.registry.retargets.abort("feat-y")

    assert aborted is not None
    assert env.git.branch_head("feat-y") == "y2"
    assert env.registry.retargets.status("feat-y").idle


def test_abort_unfinalized_handoff_undoes_replay(tmp_path: Path) -> None:
    env, path = _with_feat_y(tmp_path)
    env.registry.retargets.begin_retarget("feat-y", "release-9")
    env.registry.retargets.replay("feat-y")

    aborted = env.registry.retargets.abort("feat-y")

    assert aborted is not None
    assert env.git.branch_head("feat-y") == "y2"
    assert env.git.list_staged_files(path) == []
    assert env.registry.handoffs.load("feat-y") is None
    record = env.registry.records.load("feat-y")
    assert record is not None
    assert record.base_sha == "u1"


def test_abort_with_nothing_outstanding_is_noop(tmp_path: Path) -> None:
    env, _ = _with_feat_y(tmp_path)

    assert env.registry.retargets.abort("feat-y") is None
    assert env.git.resets == []


def test_resolve_continues_replay_after_manual_fix(tmp_path: Path) -> None:
    env, path = _with_feat_y(tmp_path)
    env.registry.retargets.begin_retarget("feat-y", "release-9-conflicting")
    env.registry.retargets.replay("feat-y")
    env.git.simulate_resolve(path, "lib.txt", "v9+v2")

    operation = env.registry.retargets.resolve("feat-y")

    assert operation.outcome is RetargetOutcome.REPLAYED_UNSIGNED
    assert operation.applied == ("y1", "y2")
    assert env.git.index_of(path)["lib.txt"] == "v9+v2"
    assert env.git.list_staged_files(path) == ["feature.txt", "lib.txt"]
    assert env.registry.handoffs.load("feat-y") is not None

    record = env.registry.records.load("feat-y")
    assert record is not None
    assert record.state is WorktreeState.ACTIVE


def test_resolve_with_unmerged_paths_still_conflicts(tmp_path: Path) -> None:
    env, _ = _with_feat_y(tmp_path)
    env.registry.retargets.begin_retarget("feat-y", "release-9-conflicting")
    env.registry.retargets.replay("feat-y")

    with pytest.raises(ConflictDuringReplay) as exc_info:
        env.registry.retargets.resolve("feat-y")

    assert exc_info.value.paths == ["lib.txt"]
    operation = env.registry.operations.load("feat-y")
    assert operation is not None
    assert operation.outcome is RetargetOutcome.CONFLICTED


def test_resolve_pending_operation_is_refused(tmp_path: Path) -> None:
    env, _ = _with_feat_y(tmp_path)
    env.registry.retargets.begin_retarget("feat-y", "release-9")

    with pytest.raises(ActiveOperation):
        env.registry.retargets.resolve("feat-y")


def test_replay_conflicted_operation_is_refused(tmp_path: Path) -> None:
    env, _ = _with_feat_y(tmp_path)
    env.registry.retargets.begin_retarget("feat-y", "release-9-conflicting")
    env.registry.retargets.replay("feat-y")

    with pytest.raises(ActiveOperation):
        env.registry.retargets.replay("feat-y")


def test_replay_without_operation_is_not_found(tmp_path: Path) -> None:
    env, _ = _with_feat_y(tmp_path)

    with pytest.raises(NotFound):
        env.registry.retargets.replay("feat-y")


def test_begin_twice_is_active_operation(tmp_path: Path) -> None:
    env, _ = _with_feat_y(tmp_path)
    env.registry.retargets.begin_retarget("feat-y", "release-9")

    with pytest.raises(ActiveOperation):
        env.registry.retargets.begin_retarget("feat-y", "release-9")


def test_begin_while_handoff_waiting_is_active_operation(tmp_path: Path) -> None:
    env, _ = _with_feat_y(tmp_path)
    env.registry.retargets.begin_retarget("feat-y", "release-9")
    env.registry.retargets.replay("feat-y")

    with pytest.raises(ActiveOperation):
        env.registry.retargets.begin_retarget("feat-y", "main")


def test_begin_unknown_base_is_invalid_base(tmp_path: Path) -> None:
    env, _ = _with_feat_y(tmp_path)

    with pytest.raises(InvalidBase):
        env.registry.retargets.begin_retarget("feat-y", "release-10")

    assert env.registry.operations.load("feat-y") is None
    assert BACKUP_REF not in env.git.refs


def test_begin_without_worktree_is_not_found(tmp_path: Path) -> None:
    env = build_workspace(tmp_path)

    with pytest.raises(NotFound):
        env.registry.retargets.begin_retarget("feat-y", "release-9")


def test_begin_with_uncommitted_changes_is_refused(tmp_path: Path) -> None:
    env, path = _with_feat_y(tmp_path)
    env.git.simulate_edit(path, "README", "local edit")

    with pytest.raises(UncommittedChanges):
        env.registry.retargets.begin_retarget("feat-y", "release-9")

    assert env.registry.operations.load("feat-y") is None


def test_begin_on_conflicted_worktree_is_illegal(tmp_path: Path) -> None:
    env, _ = _with_feat_y(tmp_path)
    env.registry.retargets.begin_retarget("feat-y", "release-9-conflicting")
    env.registry.retargets.replay("feat-y")
    # Drop the operation file to reach the state check
    env.registry.operations.discard("feat-y")

    with pytest.raises(IllegalTransition):
        env.registry.retargets.begin_retarget("feat-y", "release-9")


def test_adopted_worktree_needs_explicit_original_base(tmp_path: Path) -> None:
    env = build_workspace(tmp_path, existing_worktrees={"feat-y": "feat-y"})

    with pytest.raises(InvalidBase):
        env.registry.retargets.begin_retarget("feat-y", "release-9")

    operation = env.registry.retargets.begin_retarget(
        "feat-y", "release-9", from_base="unstable"
    )
    assert [c.sha for c in operation.commits] == ["y1", "y2"]


def test_finalize_discards_manifest_and_backup(tmp_path: Path) -> None:
    env, _ = _with_feat_y(tmp_path)
    env.registry.retargets.begin_retarget("feat-y", "release-9")
    env.registry.retargets.replay("feat-y")

    manifest = env.registry.retargets.finalize_handoff("feat-y")

    assert manifest.branch == "feat-y"
    assert env.registry.handoffs.load("feat-y") is None
    assert BACKUP_REF not in env.git.refs
    assert env.registry.retargets.status("feat-y").idle


def test_finalize_without_handoff_is_not_found(tmp_path: Path) -> None:
    env, _ = _with_feat_y(tmp_path)

    with pytest.raises(NotFound):
        env.registry.retargets.finalize_handoff("feat-y")


def test_outstanding_lists_operations_and_handoffs(tmp_path: Path) -> None:
    env, _ = _with_feat_y(tmp_path)
    env.registry.worktrees.create("feat-x", "unstable")
    env.registry.retargets.begin_retarget("feat-y", "release-9")
    env.registry.retargets.replay("feat-y")
    env.registry.retargets.begin_retarget("feat-x", "main")

    statuses = {s.branch: s for s in env.registry.retargets.outstanding()}

    assert sorted(statuses) == ["feat-x", "feat-y"]
    assert statuses["feat-x"].operation is not None
    assert statuses["feat-y"].handoff is not None


def test_retarget_is_refused_while_branch_is_busy(tmp_path: Path) -> None:
    env, _ = _with_feat_y(tmp_path)

    with env.registry.locks.hold("feat-y", ActiveOperation("feat-y", "held by test")):
        with pytest.raises(ActiveOperation):
            env.registry.retargets.begin_retarget("feat-y", "release-9")
