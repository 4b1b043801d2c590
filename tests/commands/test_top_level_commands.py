"""Tests for init, status and running outside a workspace."""

import shutil
from pathlib import Path

from click.testing import CliRunner

from branchyard.cli.cli import cli
from branchyard.core.config import load_workspace_config
from branchyard.core.context import BranchyardContext
from tests.fakes.git import FakeGit
from tests.fakes.github import FakeGitHub
from tests.test_utils.cli_helpers import invoke, json_stdout
from tests.test_utils.workspace_env import build_workspace, standard_branches, standard_commits


def _bare_context(tmp_path: Path, repo_root: Path) -> BranchyardContext:
    git = FakeGit(
        repo_root=repo_root,
        commits=standard_commits(),
        branches=standard_branches(),
        root_branch="main",
    )
    return BranchyardContext.for_test(git, FakeGitHub(), cwd=tmp_path)


def test_init_clones_into_new_workspace(tmp_path: Path) -> None:
    root = (tmp_path / "ws").resolve()
    ctx = _bare_context(tmp_path, root / "repo")

    result = CliRunner().invoke(
        cli, ["init", str(root), "--clone", "https://github.com/example/project.git"], obj=ctx
    )

    assert result.exit_code == 0, result.output
    assert result.stdout.strip() == str(root)
    assert (root / "repo").is_dir()
    assert (root / "build-cache").is_dir()
    assert [b.name for b in load_workspace_config(root).remotes] == ["origin"]


def test_init_without_source_fails(tmp_path: Path) -> None:
    root = (tmp_path / "ws").resolve()
    ctx = _bare_context(tmp_path, tmp_path / "elsewhere")

    result = CliRunner().invoke(cli, ["init", str(root)], obj=ctx)

    assert result.exit_code == 1
    assert "No repository" in result.output


def test_commands_outside_workspace_point_at_init(tmp_path: Path) -> None:
    ctx = _bare_context(tmp_path, tmp_path / "repo")

    result = CliRunner().invoke(cli, ["wt", "list"], obj=ctx)

    assert result.exit_code == 1
    assert "branchyard init" in result.output


def test_status_summarizes_workspace(tmp_path: Path) -> None:
    env = build_workspace(tmp_path)
    env.registry.worktrees.create("feat-y", "unstable")
    gone = env.registry.worktrees.create("feat-z", "main")
    shutil.rmtree(gone.path)
    env.registry.retargets.begin_retarget("feat-y", "release-9")

    result = invoke(env, ["status", "--format", "json"])

    assert result.exit_code == 0, result.output
    data = json_stdout(result)
    assert data["root"] == str(env.root)
    assert data["trunk_branch"] == "main"
    assert data["orphaned"] == ["feat-z"]
    assert [op["branch"] for op in data["retargets"]] == ["feat-y"]
    assert data["handoffs"] == []


def test_status_text(tmp_path: Path) -> None:
    env = build_workspace(tmp_path)

    result = invoke(env, ["status"])

    assert result.exit_code == 0, result.output
    assert "No worktrees." in result.output
    assert "trunk: main" in result.output


def test_version_option() -> None:
    result = CliRunner().invoke(cli, ["--version"], obj=object())

    assert result.exit_code == 0
    assert "version" in result.output
