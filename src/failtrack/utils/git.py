"""
Git metadata collection.

Reads the current branch and HEAD commit details by shelling out to git.
Every lookup is best-effort: outside a repository, or without git on PATH,
the fields are simply left empty.
"""

import logging
import os
import shutil
import subprocess
from pathlib import Path

from failtrack.models.results import GitInfo

logger = logging.getLogger(__name__)

# Environment variables that CI providers use to expose the branch name
CI_BRANCH_VARIABLES = (
    "GITHUB_HEAD_REF",
    "GITHUB_REF_NAME",
    "CI_COMMIT_REF_NAME",
    "BRANCH_NAME",
)


def _git(args: list[str], cwd: Path | None = None, timeout: float = 10.0) -> str | None:
    """Run a git command and return stripped stdout, or None on failure."""
    git_path = shutil.which("git")
    if not git_path:
        return None
    try:
        completed = subprocess.run(
            [git_path, *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"git {' '.join(args)} failed: {e}")
        return None

    if completed.returncode != 0:
        return None
    output = completed.stdout.strip()
    return output or None


def current_branch(cwd: Path | None = None) -> str | None:
    """Return the current branch name.

    CI environment variables take precedence because CI checkouts are
    frequently in detached HEAD state.
    """
    for name in CI_BRANCH_VARIABLES:
        value = os.environ.get(name)
        if value:
            return value

    branch = _git(["rev-parse", "--abbrev-ref", "HEAD"], cwd=cwd)
    if branch == "HEAD":
        return None
    return branch


def collect_git_info(cwd: Path | None = None) -> GitInfo:
    """Collect branch and HEAD commit details.

    Args:
        cwd: Working directory (defaults to the process working directory)

    Returns:
        GitInfo with whatever could be determined
    """
    return GitInfo(
        branch=current_branch(cwd),
        commit=_git(["rev-parse", "HEAD"], cwd=cwd),
        author=_git(["log", "-1", "--format=%an"], cwd=cwd),
        message=_git(["log", "-1", "--format=%s"], cwd=cwd),
    )


def is_ci() -> bool:
    """Check whether the process runs under a CI provider."""
    return bool(os.environ.get("CI") or os.environ.get("GITHUB_ACTIONS"))
