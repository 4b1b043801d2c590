"""Production GitHub implementation using the gh CLI."""

import json
import logging
import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path

from branchyard.core.github.abc import GitHub
from branchyard.core.github.parsing import (
    parse_commit_pulls,
    parse_label_names,
    parse_pr_list,
    parse_pr_number_from_url,
)
from branchyard.core.github.types import PullRequestInfo
from branchyard.core.subprocess import run_subprocess_with_context

logger = logging.getLogger(__name__)

PR_JSON_FIELDS = "number,state,url,title,headRefName,baseRefName,isDraft,labels"


def execute_gh_command(cmd: list[str], cwd: Path) -> str:
    """Execute a gh CLI command and return stdout.

    Raises:
        subprocess.CalledProcessError: If command fails
        FileNotFoundError: If gh is not installed
    """
    logger.debug("gh: %s", " ".join(cmd))
    result = subprocess.run(cmd, cwd=cwd, capture_output=True, text=True, check=False)
    if result.returncode != 0:
        raise subprocess.CalledProcessError(
            result.returncode, cmd, output=result.stdout, stderr=result.stderr
        )
    return result.stdout


class RealGitHub(GitHub):
    """Production implementation using gh CLI.

    Reads treat gh being missing or unauthenticated as "no data"; there is no
    reliable way to check either up front without duplicating gh's logic.
    """

    def __init__(self, execute_fn: Callable[[list[str], Path], str] | None = None) -> None:
        self._execute = execute_fn or execute_gh_command

    def get_pr_for_branch(self, repo_root: Path, branch: str) -> PullRequestInfo | None:
        cmd = [
            "gh",
            "pr",
            "list",
            "--head",
            branch,
            "--state",
            "all",
            "--json",
            PR_JSON_FIELDS,
            "--limit",
            "1",
        ]
        try:
            prs = parse_pr_list(self._execute(cmd, repo_root))
        except (subprocess.CalledProcessError, FileNotFoundError, json.JSONDecodeError):
            return None
        return prs[0] if prs else None

    def get_pr_labels(self, repo_root: Path, pr_number: int) -> list[str]:
        cmd = ["gh", "pr", "view", str(pr_number), "--json", "labels"]
        try:
            return parse_label_names(self._execute(cmd, repo_root))
        except (subprocess.CalledProcessError, FileNotFoundError, json.JSONDecodeError):
            return []

    def get_prs_for_commits(
        self, repo_root: Path, commit_shas: Sequence[str]
    ) -> dict[str, list[int]]:
        mapping: dict[str, list[int]] = {}
        for sha in commit_shas:
            # gh fills in {owner}/{repo} from the repository's default remote
            cmd = ["gh", "api", f"repos/{{owner}}/{{repo}}/commits/{sha}/pulls"]
            try:
                mapping[sha] = parse_commit_pulls(self._execute(cmd, repo_root))
            except (subprocess.CalledProcessError, FileNotFoundError, json.JSONDecodeError):
                mapping[sha] = []
        return mapping

    def create_pr(
        self,
        repo_root: Path,
        *,
        head: str,
        base: str,
        title: str,
        body: str,
        draft: bool,
    ) -> int:
        cmd = [
            "gh",
            "pr",
            "create",
            "--head",
            head,
            "--base",
            base,
            "--title",
            title,
            "--body",
            body,
        ]
        if draft:
            cmd.append("--draft")

        result = run_subprocess_with_context(
            cmd,
            operation_context=f"create pull request for '{head}' into '{base}'",
            cwd=repo_root,
        )
        number = parse_pr_number_from_url(result.stdout.strip().splitlines()[-1])
        if number is None:
            raise RuntimeError(f"Could not parse PR number from gh output: {result.stdout!r}")
        return number
