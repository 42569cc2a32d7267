"""
File Tracker.

Local tracker that stores each issue as a JSON document under a directory.
Useful offline, in CI dry runs, and in tests.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any

from failtrack.models.mapping import utc_now
from failtrack.tracker.base import IssueResult, TrackerClient, TrackerError

logger = logging.getLogger(__name__)

DEFAULT_ISSUES_DIR = ".failtrack/issues"


class FileTracker(TrackerClient):
    """Tracker writing <issues_dir>/<number>.json files.

    Issue numbers are sequential, starting at 1.
    """

    name = "file"

    def __init__(self, issues_dir: str | Path = DEFAULT_ISSUES_DIR) -> None:
        """Initialize the tracker.

        Args:
            issues_dir: Directory holding one JSON file per issue
        """
        self._issues_dir = Path(issues_dir)
        self._lock = asyncio.Lock()

    @property
    def issues_dir(self) -> Path:
        """Get the issues directory."""
        return self._issues_dir

    def issue_path(self, issue_number: int) -> Path:
        """Get the file path of an issue."""
        return self._issues_dir / f"{issue_number}.json"

    def read_issue(self, issue_number: int) -> dict[str, Any]:
        """Read an issue document.

        Raises:
            TrackerError: If the issue does not exist or cannot be parsed
        """
        path = self.issue_path(issue_number)
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise TrackerError(f"Issue #{issue_number} not found") from e
        except (OSError, ValueError) as e:
            raise TrackerError(f"Failed to read issue #{issue_number}: {e}") from e

    def list_issues(self) -> list[int]:
        """List existing issue numbers in ascending order."""
        if not self._issues_dir.is_dir():
            return []
        return sorted(
            int(path.stem)
            for path in self._issues_dir.glob("*.json")
            if path.stem.isdigit()
        )

    def _write_issue(self, issue_number: int, issue: dict[str, Any]) -> None:
        path = self.issue_path(issue_number)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            self._issues_dir.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(issue, indent=2), encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            if tmp_path.exists():
                try:
                    tmp_path.unlink()
                except OSError:
                    pass
            raise TrackerError(f"Failed to write issue #{issue_number}: {e}") from e

    async def is_available(self) -> bool:
        try:
            self._issues_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.debug(f"Cannot create issues directory {self._issues_dir}: {e}")
            return False
        return os.access(self._issues_dir, os.W_OK)

    async def create_issue(
        self,
        title: str,
        body: str,
        labels: list[str] | None = None,
    ) -> IssueResult:
        async with self._lock:
            existing = self.list_issues()
            issue_number = existing[-1] + 1 if existing else 1
            now = utc_now().isoformat()
            issue = {
                "number": issue_number,
                "title": title,
                "body": body,
                "labels": [label for label in labels or [] if label],
                "state": "open",
                "comments": [],
                "created_at": now,
                "updated_at": now,
            }
            try:
                self._write_issue(issue_number, issue)
            except TrackerError as e:
                return IssueResult.failed(str(e))
        return IssueResult.ok(issue_number)

    async def close_issue(
        self,
        issue_number: int,
        comment: str | None = None,
    ) -> IssueResult:
        return await self._set_state(issue_number, "closed", comment)

    async def reopen_issue(
        self,
        issue_number: int,
        comment: str | None = None,
    ) -> IssueResult:
        return await self._set_state(issue_number, "open", comment)

    async def _set_state(
        self,
        issue_number: int,
        state: str,
        comment: str | None,
    ) -> IssueResult:
        async with self._lock:
            try:
                issue = self.read_issue(issue_number)
                now = utc_now().isoformat()
                issue["state"] = state
                issue["updated_at"] = now
                if state == "closed":
                    issue["closed_at"] = now
                if comment:
                    issue.setdefault("comments", []).append(
                        {"body": comment, "created_at": now}
                    )
                self._write_issue(issue_number, issue)
            except TrackerError as e:
                return IssueResult.failed(str(e), issue_number)
        return IssueResult.ok(issue_number)
