"""
pytest plugin.

Enable with ``-p failtrack.reporter.pytest_plugin``:

    pytest -p failtrack.reporter.pytest_plugin --generate-issues --track-issues

Results are collected during the run and processed once at session finish.
Issue tracking never changes the exit status of the test run.
"""

import asyncio
import logging
from typing import Any

import pytest

from failtrack.config.loader import ConfigurationError, load_config
from failtrack.config.models import FailtrackConfig
from failtrack.lifecycle.manager import BatchSummary
from failtrack.models.base import TestOutcome
from failtrack.models.results import TestResult
from failtrack.reporter.session import TrackingSession, build_session

logger = logging.getLogger(__name__)

PLUGIN_NAME = "failtrack-session"


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("failtrack", "test failure issue tracking")
    group.addoption(
        "--generate-issues",
        action="store_const",
        const=True,
        default=None,
        help="Create tracker issues for failing tests.",
    )
    group.addoption(
        "--track-issues",
        action="store_const",
        const=True,
        default=None,
        help="Close tracker issues for tests that pass again.",
    )
    group.addoption(
        "--issue-db",
        default=None,
        metavar="PATH",
        help="Path of the test/issue mapping database.",
    )
    group.addoption(
        "--issue-tracker",
        default=None,
        choices=["github_cli", "github_rest", "file"],
        help="Tracker backend to use.",
    )
    group.addoption(
        "--failtrack-config",
        default=None,
        metavar="PATH",
        help="failtrack YAML configuration file.",
    )


def pytest_configure(config: pytest.Config) -> None:
    # pytest-xdist workers forward their reports to the controller, which
    # runs the only batch
    if hasattr(config, "workerinput"):
        return

    overrides = {
        "lifecycle.generate_issues": config.getoption("generate_issues"),
        "lifecycle.track_issues": config.getoption("track_issues"),
        "storage.database_path": config.getoption("issue_db"),
        "tracker.type": config.getoption("issue_tracker"),
    }
    try:
        failtrack_config = load_config(config.getoption("failtrack_config"), overrides)
    except ConfigurationError as e:
        raise pytest.UsageError(f"failtrack: {e}") from e

    if failtrack_config.lifecycle.enabled:
        config.pluginmanager.register(FailtrackPlugin(failtrack_config), PLUGIN_NAME)


def report_to_result(report: pytest.TestReport) -> TestResult | None:
    """Convert a pytest report into a TestResult.

    Returns None for reports that carry no outcome worth tracking: passing
    setup/teardown phases, skips and expected failures.
    """
    if report.when != "call" and not report.failed:
        return None
    if report.skipped or hasattr(report, "wasxfail"):
        return None

    file_path, _, remainder = report.nodeid.partition("::")
    suite = "::".join(remainder.split("::")[:-1])
    error_stack = (report.longreprtext or None) if report.failed else None
    error_message = None
    if error_stack:
        error_message = _error_summary(error_stack)
        if report.when != "call":
            error_message = f"error in {report.when}: {error_message}"

    return TestResult(
        test_file_path=file_path or report.location[0],
        test_suite_name=suite,
        test_name=report.nodeid,
        status=TestOutcome.FAILED if report.failed else TestOutcome.PASSED,
        error_message=error_message,
        error_stack=error_stack,
        duration_ms=max(report.duration, 0.0) * 1000,
    )


def _error_summary(longrepr: str) -> str:
    """Pick the most useful single line from a pytest failure report."""
    for line in longrepr.splitlines():
        if line.startswith("E "):
            return line[1:].strip()
    lines = [line for line in longrepr.splitlines() if line.strip()]
    return lines[-1].strip() if lines else longrepr


class FailtrackPlugin:
    """Session-scoped plugin object registered when tracking is enabled."""

    def __init__(self, config: FailtrackConfig) -> None:
        self._config = config
        self._session: TrackingSession | None = None
        self.summary: BatchSummary | None = None

    def pytest_sessionstart(self, session: pytest.Session) -> None:
        try:
            self._session = build_session(self._config)
            asyncio.run(self._start())
        except Exception as e:
            logger.warning(f"failtrack disabled for this run: {e}")
            self._session = None

    async def _start(self) -> None:
        await self._session.on_run_start()
        # Clients are recreated lazily inside the next event loop
        await self._session.aclose()

    def pytest_runtest_logreport(self, report: pytest.TestReport) -> None:
        if self._session is None:
            return
        try:
            result = report_to_result(report)
        except ValueError as e:
            logger.warning(f"Could not record {report.nodeid}: {e}")
            return
        if result is not None:
            self._session.on_test_result(result)

    def pytest_sessionfinish(self, session: pytest.Session, exitstatus: Any) -> None:
        if self._session is None:
            return
        self.summary = asyncio.run(self._session.on_run_complete())

    def pytest_terminal_summary(self, terminalreporter: Any) -> None:
        if self.summary is not None:
            terminalreporter.write_sep("-", "failtrack")
            terminalreporter.write_line(self.summary.summary_line())
            for outcome in self.summary.outcomes:
                if not outcome.success:
                    terminalreporter.write_line(f"  {outcome.test_name}: {outcome.error}")
