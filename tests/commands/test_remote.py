"""Tests for the remote command group."""

from pathlib import Path

from tests.test_utils.cli_helpers import invoke, json_stdout
from tests.test_utils.workspace_env import FORK, UPSTREAM, build_workspace


def test_list_shows_bindings_and_unbound_remotes(tmp_path: Path) -> None:
    env = build_workspace(
        tmp_path,
        git_remotes={"origin": UPSTREAM.url, "fork": FORK.url, "colleague": "https://x/y.git"},
    )

    result = invoke(env, ["remote", "list", "--format", "json"])

    assert result.exit_code == 0, result.output
    data = json_stdout(result)
    assert [(b["name"], b["permission"]) for b in data["bindings"]] == [
        ("origin", "read-only"),
        ("fork", "read-write"),
    ]
    assert data["unbound"] == ["colleague"]


def test_check_push_to_fork_allowed(tmp_path: Path) -> None:
    env = build_workspace(tmp_path)

    result = invoke(env, ["remote", "check", "fork"])

    assert result.exit_code == 0, result.output
    assert "push to fork is allowed" in result.output


def test_check_push_to_upstream_forbidden(tmp_path: Path) -> None:
    env = build_workspace(tmp_path)

    result = invoke(env, ["remote", "check", "origin", "--format", "json"])

    assert result.exit_code == 1
    data = json_stdout(result)
    assert data["error"] == "ForbiddenRemote"
    assert "read-only" in data["message"]


def test_check_fetch_from_upstream_allowed(tmp_path: Path) -> None:
    env = build_workspace(tmp_path)

    result = invoke(env, ["remote", "check", "origin", "--operation", "fetch"])

    assert result.exit_code == 0, result.output


def test_fetch(tmp_path: Path) -> None:
    env = build_workspace(tmp_path)

    result = invoke(env, ["remote", "fetch", "origin", "unstable"])

    assert result.exit_code == 0, result.output
    assert env.git.fetches == [("origin", "unstable")]
