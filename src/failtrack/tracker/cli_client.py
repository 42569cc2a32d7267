"""
GitHub CLI Tracker.

Issue tracker backed by the gh command line tool.
See https://cli.github.com/manual/gh_issue for the commands used here.
"""

import asyncio
import logging
import re
import shutil

from failtrack.tracker.base import IssueResult, TrackerClient, TrackerError

logger = logging.getLogger(__name__)

# gh prints the URL of the created issue, e.g. https://github.com/o/r/issues/42
ISSUE_URL_PATTERN = re.compile(r"/issues/(\d+)")


class GitHubCliTracker(TrackerClient):
    """Tracker that shells out to gh.

    Authentication and default repository are whatever gh is configured
    with, unless a repository is given explicitly.
    """

    name = "github_cli"

    def __init__(
        self,
        repo: str | None = None,
        timeout_seconds: int = 30,
        executable: str = "gh",
    ) -> None:
        """Initialize the client.

        Args:
            repo: Repository in owner/name form (gh default if None)
            timeout_seconds: Per-command timeout
            executable: Name or path of the gh binary
        """
        self._repo = repo
        self._timeout = timeout_seconds
        self._executable = executable
        self._gh_path: str | None = None

    @property
    def repo(self) -> str | None:
        """Get the target repository."""
        return self._repo

    async def _run_command(self, args: list[str]) -> str:
        """Run a gh command.

        Args:
            args: Command arguments (without the gh prefix)

        Returns:
            Decoded stdout

        Raises:
            TrackerError: If the command cannot start, fails, or times out
        """
        cmd = [self._gh_path or self._executable, *args]
        if self._repo and args and args[0] == "issue":
            cmd.extend(["--repo", self._repo])

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise TrackerError(f"Failed to run gh: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise TrackerError(f"gh command timed out: {' '.join(args[:3])}") from e

        if process.returncode != 0:
            error_msg = stderr.decode(errors="replace").strip() if stderr else "Unknown error"
            raise TrackerError(
                f"gh command failed: {' '.join(args[:3])}: {error_msg}",
                exit_code=process.returncode,
            )

        return stdout.decode(errors="replace") if stdout else ""

    async def is_available(self) -> bool:
        self._gh_path = shutil.which(self._executable)
        if not self._gh_path:
            logger.debug("gh not found on PATH")
            return False
        try:
            await self._run_command(["--version"])
        except TrackerError as e:
            logger.debug(f"gh --version failed: {e}")
            return False
        return True

    async def create_issue(
        self,
        title: str,
        body: str,
        labels: list[str] | None = None,
    ) -> IssueResult:
        args = ["issue", "create", "--title", title, "--body", body]
        for label in labels or []:
            if label:
                args.extend(["--label", label])

        try:
            output = await self._run_command(args)
        except TrackerError as e:
            return IssueResult.failed(str(e))

        issue_number = self._parse_issue_number(output)
        if issue_number is None:
            return IssueResult.failed(f"Could not parse issue number from output: {output.strip()}")
        return IssueResult.ok(issue_number)

    async def close_issue(
        self,
        issue_number: int,
        comment: str | None = None,
    ) -> IssueResult:
        args = ["issue", "close", str(issue_number)]
        if comment:
            args.extend(["--comment", comment])
        try:
            await self._run_command(args)
        except TrackerError as e:
            return IssueResult.failed(str(e), issue_number)
        return IssueResult.ok(issue_number)

    async def reopen_issue(
        self,
        issue_number: int,
        comment: str | None = None,
    ) -> IssueResult:
        try:
            await self._run_command(["issue", "reopen", str(issue_number)])
        except TrackerError as e:
            return IssueResult.failed(str(e), issue_number)

        # The issue is open again even if the comment cannot be posted
        if comment:
            try:
                await self._run_command(
                    ["issue", "comment", str(issue_number), "--body", comment]
                )
            except TrackerError as e:
                logger.warning(f"Reopened issue #{issue_number} but failed to comment: {e}")
        return IssueResult.ok(issue_number)

    @staticmethod
    def _parse_issue_number(output: str) -> int | None:
        """Parse the issue number from gh issue create output."""
        match = ISSUE_URL_PATTERN.search(output)
        if match:
            return int(match.group(1))
        return None
