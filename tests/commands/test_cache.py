"""Tests for the cache command group."""

import sys
from pathlib import Path

from tests.test_utils.cli_helpers import invoke, json_stdout
from tests.test_utils.workspace_env import build_workspace


def test_status_reports_binding(tmp_path: Path) -> None:
    env = build_workspace(tmp_path)
    record = env.registry.worktrees.create("feat-x", "main")
    (record.path / ".env").unlink()
    env.registry.worktrees.create("feat-z", "main")

    result = invoke(env, ["cache", "status", "--format", "json"])

    assert result.exit_code == 0, result.output
    data = json_stdout(result)
    assert data["cache_dir"] == str(env.root / "build-cache")
    assert data["bound"] == {"feat-x": False, "feat-z": True}
    assert data["active_builds"] == []


def test_bind_repairs_worktree(tmp_path: Path) -> None:
    env = build_workspace(tmp_path)
    record = env.registry.worktrees.create("feat-x", "main")
    (record.path / ".env").unlink()

    result = invoke(env, ["cache", "bind", "feat-x"])

    assert result.exit_code == 0, result.output
    assert env.registry.cache.is_bound(record.path)


def test_bind_all(tmp_path: Path) -> None:
    env = build_workspace(tmp_path)
    paths = [env.registry.worktrees.create(b, "main").path for b in ("feat-a", "feat-b")]
    for path in paths:
        (path / ".env").unlink()

    result = invoke(env, ["cache", "bind", "--all"])

    assert result.exit_code == 0, result.output
    assert all(env.registry.cache.is_bound(path) for path in paths)


def test_run_propagates_exit_code(tmp_path: Path) -> None:
    env = build_workspace(tmp_path)
    env.registry.worktrees.create("feat-x", "main")

    result = invoke(
        env, ["cache", "run", "feat-x", sys.executable, "-c", "import sys; sys.exit(3)"]
    )

    assert result.exit_code == 3


def test_run_unknown_branch(tmp_path: Path) -> None:
    env = build_workspace(tmp_path)

    result = invoke(env, ["cache", "run", "feat-x", "true"])

    assert result.exit_code == 1
    assert "No worktree exists" in result.output
