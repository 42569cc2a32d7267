"""
Tracker Client Interface.

Common contract for issue tracker backends. Public methods report failures
through IssueResult instead of raising, so a broken tracker can never
interrupt a test run.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class IssueResult:
    """Outcome of a tracker operation.

    Attributes:
        success: Whether the operation succeeded
        issue_number: Issue number created or affected
        error: Error description if the operation failed
    """

    success: bool
    issue_number: int | None = None
    error: str | None = None

    @classmethod
    def ok(cls, issue_number: int | None = None) -> "IssueResult":
        return cls(success=True, issue_number=issue_number)

    @classmethod
    def failed(cls, error: str, issue_number: int | None = None) -> "IssueResult":
        return cls(success=False, issue_number=issue_number, error=error)


class TrackerClient(ABC):
    """Abstract issue tracker.

    Implementations must not raise from the public coroutines below.
    """

    #: Short backend name used in log messages
    name: str = "tracker"

    @abstractmethod
    async def is_available(self) -> bool:
        """Check whether the tracker can be used right now."""

    @abstractmethod
    async def create_issue(
        self,
        title: str,
        body: str,
        labels: list[str] | None = None,
    ) -> IssueResult:
        """Open a new issue.

        Args:
            title: Issue title
            body: Issue body (markdown)
            labels: Labels to apply

        Returns:
            IssueResult carrying the new issue number on success
        """

    @abstractmethod
    async def close_issue(
        self,
        issue_number: int,
        comment: str | None = None,
    ) -> IssueResult:
        """Close an issue, optionally leaving a comment."""

    @abstractmethod
    async def reopen_issue(
        self,
        issue_number: int,
        comment: str | None = None,
    ) -> IssueResult:
        """Reopen a closed issue, optionally leaving a comment."""

    async def aclose(self) -> None:
        """Release any resources held by the client."""

    async def __aenter__(self) -> "TrackerClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


class TrackerError(Exception):
    """Raised by tracker transport helpers; never escapes a public method."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.status_code = status_code


class RetryableTrackerError(TrackerError):
    """Transient failure (rate limit or server error) worth retrying."""

    pass
