"""
Test Result Models.

Normalized per-test observations handed to the lifecycle manager, plus the
git metadata captured when an issue is closed.
"""

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

from failtrack.models.base import TestOutcome
from failtrack.utils.identity import describe, identify


class TestResult(BaseModel):
    """A single normalized test observation.

    Attributes:
        test_file_path: Path of the file that defines the test
        test_suite_name: Name of the enclosing suite (may be empty)
        test_name: Full test name including suite ancestry
        status: Outcome of the test
        error_message: Failure message, if any
        error_stack: Failure traceback, if any
        duration_ms: Test duration in milliseconds
    """

    __test__ = False

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    test_file_path: str = Field(..., alias="testFilePath")
    test_suite_name: str = Field(default="", alias="testSuiteName")
    test_name: str = Field(..., alias="testName")
    status: TestOutcome
    error_message: str | None = Field(default=None, alias="errorMessage")
    error_stack: str | None = Field(default=None, alias="errorStack")
    duration_ms: float | None = Field(default=None, ge=0, alias="durationMs")

    @property
    def identity(self) -> str:
        """Stable identity of this test."""
        return identify(self.test_file_path, self.test_name)

    @property
    def description(self) -> str:
        """Leaf test name without suite ancestry."""
        return describe(self.test_name)

    @property
    def failed(self) -> bool:
        """Check if the test failed."""
        return self.status == TestOutcome.FAILED

    @property
    def passed(self) -> bool:
        """Check if the test passed."""
        return self.status == TestOutcome.PASSED


@dataclass
class GitInfo:
    """Git metadata for the working tree.

    Attributes:
        branch: Current branch name
        commit: HEAD commit hash
        author: HEAD commit author
        message: HEAD commit subject
    """

    branch: str | None = None
    commit: str | None = None
    author: str | None = None
    message: str | None = None
