"""
failtrack Test Configuration and Fixtures

This module provides pytest fixtures for testing the issue lifecycle.
All fixtures avoid real tracker calls, git invocations and network access.

Fixture Categories:
- Environment isolation: strips FAILTRACK_* and CI variables
- Results: factories for passing and failing TestResult objects
- Trackers: AsyncMock tracker clients with scripted responses
- Storage: mapping stores rooted in tmp_path
"""

import os
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from failtrack.config.environment import reset_environment
from failtrack.config.models import LifecycleConfig
from failtrack.models import GitInfo, TestOutcome, TestResult
from failtrack.storage.mapping_store import MappingStore
from failtrack.tracker.base import IssueResult, TrackerClient

# Variables that would leak host state into configuration or git lookups
ISOLATED_ENV_PREFIXES = ("FAILTRACK_",)
ISOLATED_ENV_VARS = (
    "CI",
    "GITHUB_ACTIONS",
    "GITHUB_HEAD_REF",
    "GITHUB_REF_NAME",
    "GITHUB_RUN_ID",
    "CI_COMMIT_REF_NAME",
    "BRANCH_NAME",
    "BUILD_URL",
    "CI_JOB_URL",
    "GITHUB_TOKEN",
)


# =============================================================================
# Environment Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch):
    """Remove host configuration variables for every test."""
    for name in list(os.environ):
        if name.startswith(ISOLATED_ENV_PREFIXES) or name in ISOLATED_ENV_VARS:
            monkeypatch.delenv(name, raising=False)
    reset_environment()
    yield
    reset_environment()


# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def database_path(tmp_path: Path) -> Path:
    """Return a mapping database path inside tmp_path."""
    return tmp_path / "test-issue-mapping.json"


# =============================================================================
# Result Fixtures
# =============================================================================


def make_result(
    status: TestOutcome = TestOutcome.FAILED,
    test_file_path: str = "tests/test_login.py",
    test_name: str = "Login › rejects bad passwords",
    error_message: str | None = None,
) -> TestResult:
    """Build a TestResult with sensible defaults."""
    if status == TestOutcome.FAILED and error_message is None:
        error_message = "AssertionError: expected 401, got 200"
    return TestResult(
        test_file_path=test_file_path,
        test_suite_name="Login",
        test_name=test_name,
        status=status,
        error_message=error_message,
        error_stack=f"Traceback:\n  {error_message}" if error_message else None,
        duration_ms=12.5,
    )


@pytest.fixture
def result_factory():
    """Return the make_result factory."""
    return make_result


@pytest.fixture
def failing_result() -> TestResult:
    """A failing test result."""
    return make_result(TestOutcome.FAILED)


@pytest.fixture
def passing_result() -> TestResult:
    """The same test, passing."""
    return make_result(TestOutcome.PASSED)


@pytest.fixture
def git_info() -> GitInfo:
    """Fixed git metadata."""
    return GitInfo(
        branch="main",
        commit="abc123def456",
        author="Dana Developer",
        message="Fix login status code",
    )


# =============================================================================
# Tracker and Store Fixtures
# =============================================================================


@pytest.fixture
def mock_tracker() -> AsyncMock:
    """Tracker client whose operations all succeed.

    create_issue returns issue #42 unless reconfigured.
    """
    tracker = AsyncMock(spec=TrackerClient)
    tracker.name = "mock"
    tracker.is_available.return_value = True
    tracker.create_issue.return_value = IssueResult(success=True, issue_number=42)
    tracker.close_issue.side_effect = lambda n, comment=None: IssueResult(
        success=True, issue_number=n
    )
    tracker.reopen_issue.side_effect = lambda n, comment=None: IssueResult(
        success=True, issue_number=n
    )
    return tracker


@pytest.fixture
def store(database_path: Path) -> MappingStore:
    """Empty mapping store in tmp_path."""
    return MappingStore(database_path)


@pytest.fixture
def full_lifecycle() -> LifecycleConfig:
    """Lifecycle configuration with generation and tracking enabled."""
    return LifecycleConfig(generate_issues=True, track_issues=True)
