"""Tests for the retarget and handoff command groups."""

from pathlib import Path

from tests.test_utils.cli_helpers import invoke, json_stdout
from tests.test_utils.workspace_env import WorkspaceEnv, build_workspace


def _env(tmp_path: Path) -> WorkspaceEnv:
    env = build_workspace(tmp_path)
    env.registry.worktrees.create("feat-y", "unstable")
    return env


def test_begin_with_replay_stages_changes(tmp_path: Path) -> None:
    env = _env(tmp_path)

    result = invoke(env, ["retarget", "begin", "feat-y", "release-9", "--replay"])

    assert result.exit_code == 0, result.output
    assert "replayed-unsigned" in result.output
    assert "branchyard handoff show feat-y" in result.output
    assert env.registry.handoffs.load("feat-y") is not None


def test_begin_then_replay_json(tmp_path: Path) -> None:
    env = _env(tmp_path)

    begun = invoke(env, ["retarget", "begin", "feat-y", "release-9", "--format", "json"])
    replayed = invoke(env, ["retarget", "replay", "feat-y", "--format", "json"])

    assert begun.exit_code == 0, begun.output
    assert json_stdout(begun)["outcome"] == "pending"
    assert replayed.exit_code == 0, replayed.output
    data = json_stdout(replayed)
    assert data["outcome"] == "replayed-unsigned"
    assert data["applied"] == ["y1", "y2"]


def test_conflicting_replay_exits_non_zero(tmp_path: Path) -> None:
    env = _env(tmp_path)

    result = invoke(env, ["retarget", "begin", "feat-y", "release-9-conflicting", "--replay"])

    assert result.exit_code == 1
    assert "conflicted" in result.output
    assert "lib.txt" in result.output
    assert "branchyard retarget resolve" in result.output


def test_conflicting_replay_json_error(tmp_path: Path) -> None:
    env = _env(tmp_path)
    invoke(env, ["retarget", "begin", "feat-y", "release-9-conflicting"])

    result = invoke(env, ["retarget", "replay", "feat-y", "--format", "json"])

    assert result.exit_code == 1
    data = json_stdout(result)
    assert data["error"] == "ConflictDuringReplay"
    assert "lib.txt" in data["message"]


def test_abort_restores_branch(tmp_path: Path) -> None:
    env = _env(tmp_path)
    invoke(env, ["retarget", "begin", "feat-y", "release-9-conflicting", "--replay"])

    result = invoke(env, ["retarget", "abort", "feat-y"])

    assert result.exit_code == 0, result.output
    assert "Aborted retarget of" in result.output
    assert env.git.branch_head("feat-y") == "y2"


def test_abort_nothing_outstanding(tmp_path: Path) -> None:
    env = _env(tmp_path)

    result = invoke(env, ["retarget", "abort", "feat-y", "--format", "json"])

    assert result.exit_code == 0, result.output
    assert json_stdout(result) == {"branch": "feat-y", "aborted": False}


def test_resolve_from_inside_worktree(tmp_path: Path) -> None:
    env = _env(tmp_path)
    path = env.registry.worktrees.require("feat-y").path
    invoke(env, ["retarget", "begin", "feat-y", "release-9-conflicting", "--replay"])
    env.git.simulate_resolve(path, "lib.txt", "merged")

    result = invoke(env, ["retarget", "resolve"], cwd=path)

    assert result.exit_code == 0, result.output
    assert "replayed-unsigned" in result.output


def test_status_lists_outstanding(tmp_path: Path) -> None:
    env = _env(tmp_path)
    invoke(env, ["retarget", "begin", "feat-y", "release-9"])

    result = invoke(env, ["retarget", "status", "--format", "json"])

    assert result.exit_code == 0, result.output
    retargets = json_stdout(result)["retargets"]
    assert [r["branch"] for r in retargets] == ["feat-y"]
    assert retargets[0]["operation"]["outcome"] == "pending"
    assert retargets[0]["handoff"] is None


def test_status_nothing_outstanding(tmp_path: Path) -> None:
    env = _env(tmp_path)

    result = invoke(env, ["retarget", "status"])

    assert result.exit_code == 0
    assert "No retargets outstanding" in result.output


def test_handoff_show_and_finalize(tmp_path: Path) -> None:
    env = _env(tmp_path)
    invoke(env, ["retarget", "begin", "feat-y", "release-9", "--replay"])

    shown = invoke(env, ["handoff", "show", "feat-y", "--format", "json"])
    listed = invoke(env, ["handoff", "list"])
    finalized = invoke(env, ["retarget", "finalize", "feat-y"])
    again = invoke(env, ["handoff", "show", "feat-y"])

    assert shown.exit_code == 0, shown.output
    manifest = json_stdout(shown)
    assert manifest["staged_paths"] == ["feature.txt", "lib.txt"]
    assert manifest["push_request"]["remote"] == "fork"
    assert "feat-y" in listed.output
    assert finalized.exit_code == 0, finalized.output
    assert again.exit_code == 1
    assert "No pending hand-off exists" in again.output


def test_handoff_show_prints_manifest_path(tmp_path: Path) -> None:
    env = _env(tmp_path)
    invoke(env, ["retarget", "begin", "feat-y", "release-9", "--replay"])

    result = invoke(env, ["handoff", "show", "feat-y"])

    assert result.exit_code == 0, result.output
    assert result.stdout.strip() == str(env.registry.handoffs.path_for("feat-y"))
