"""Tests for RealGitHub with an injected gh executor."""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from branchyard.core.github.real import RealGitHub
from tests.conftest import load_fixture

REPO = Path("/ws/repo")


def _failing(cmd: list[str], cwd: Path) -> str:
    raise subprocess.CalledProcessError(1, cmd, stderr="gh: not logged in")


def test_get_pr_for_branch_queries_head() -> None:
    calls: list[list[str]] = []

    def execute(cmd: list[str], cwd: Path) -> str:
        calls.append(cmd)
        return load_fixture("github/pr_list.json")

    pr = RealGitHub(execute_fn=execute).get_pr_for_branch(REPO, "feat-y")

    assert pr is not None
    assert pr.number == 123
    assert calls[0][:5] == ["gh", "pr", "list", "--head", "feat-y"]


def test_reads_degrade_to_no_data_when_gh_fails() -> None:
    github = RealGitHub(execute_fn=_failing)

    assert github.get_pr_for_branch(REPO, "feat-y") is None
    assert github.get_pr_labels(REPO, 123) == []
    assert github.get_prs_for_commits(REPO, ["y1", "y2"]) == {"y1": [], "y2": []}


def test_reads_degrade_when_gh_is_missing() -> None:
    def missing(cmd: list[str], cwd: Path) -> str:
        raise FileNotFoundError("gh")

    assert RealGitHub(execute_fn=missing).get_pr_labels(REPO, 1) == []


def test_get_prs_for_commits_asks_once_per_commit() -> None:
    seen: list[str] = []

    def execute(cmd: list[str], cwd: Path) -> str:
        seen.append(cmd[-1])
        return load_fixture("github/commit_pulls.json") if "y1" in cmd[-1] else "[]"

    mapping = RealGitHub(execute_fn=execute).get_prs_for_commits(REPO, ["y1", "y2"])

    assert mapping == {"y1": [123, 99], "y2": []}
    assert seen == [
        "repos/{owner}/{repo}/commits/y1/pulls",
        "repos/{owner}/{repo}/commits/y2/pulls",
    ]


def test_create_pr_parses_number_from_output() -> None:
    completed = subprocess.CompletedProcess(
        args=[], returncode=0, stdout="https://github.com/example/project/pull/321\n", stderr=""
    )
    with patch(
        "branchyard.core.github.real.run_subprocess_with_context", return_value=completed
    ) as mock_run:
        number = RealGitHub().create_pr(
            REPO, head="me:feat-y", base="unstable", title="T", body="B", draft=True
        )

    assert number == 321
    cmd = mock_run.call_args.args[0]
    assert cmd[:3] == ["gh", "pr", "create"]
    assert "--draft" in cmd
    assert cmd[cmd.index("--head") + 1] == "me:feat-y"


def test_create_pr_unparseable_output_fails() -> None:
    completed = subprocess.CompletedProcess(args=[], returncode=0, stdout="done\n", stderr="")
    with patch(
        "branchyard.core.github.real.run_subprocess_with_context", return_value=completed
    ):
        with pytest.raises(RuntimeError, match="Could not parse PR number"):
            RealGitHub().create_pr(
                REPO, head="me:feat-y", base="unstable", title="T", body="", draft=False
            )
