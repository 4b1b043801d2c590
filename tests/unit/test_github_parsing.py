"""Unit tests for GitHub parsing functions with JSON fixtures."""

import pytest

from branchyard.core.github.parsing import (
    parse_commit_pulls,
    parse_label_names,
    parse_pr_list,
    parse_pr_number_from_url,
    parse_remote_owner,
)
from tests.conftest import load_fixture


def test_parse_pr_list() -> None:
    result = parse_pr_list(load_fixture("github/pr_list.json"))

    assert [pr.number for pr in result] == [123, 124]
    first = result[0]
    assert first.state == "OPEN"
    assert first.head_ref == "feat-y"
    assert first.base_ref == "unstable"
    assert first.labels == ("release-notes", "backport-9")
    assert not first.is_draft
    assert result[1].is_draft
    assert result[1].labels == ()


def test_parse_pr_list_empty() -> None:
    assert parse_pr_list("[]") == []


def test_parse_label_names() -> None:
    data = '{"labels": [{"name": "release-notes"}, {"id": 7}, {"name": "backport-9"}]}'

    assert parse_label_names(data) == ["release-notes", "backport-9"]


def test_parse_commit_pulls() -> None:
    assert parse_commit_pulls(load_fixture("github/commit_pulls.json")) == [123, 99]


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://github.com/example/project/pull/123", 123),
        ("https://github.com/example/project/pull/123\n", 123),
        ("https://github.com/example/project/issues/5", None),
    ],
)
def test_parse_pr_number_from_url(url: str, expected: int | None) -> None:
    assert parse_pr_number_from_url(url) == expected


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://github.com/me/project.git", "me"),
        ("https://github.com/me/project", "me"),
        ("git@github.com:me/project.git", "me"),
        ("ssh://git@github.com/me/project.git", "me"),
        ("/srv/git/project.git", None),
    ],
)
def test_parse_remote_owner(url: str, expected: str | None) -> None:
    assert parse_remote_owner(url) == expected
