"""
failtrack: Test Failure Issue Tracking.

Maps individual test cases to issue-tracker entries. An issue is opened the
first time a test fails, closed when the test starts passing again, and
reopened (never duplicated) if the test regresses.

Key Features:
- Deterministic test identities derived from file path and full test name
- Durable, atomically written test-to-issue mapping database
- Pluggable trackers: GitHub CLI, GitHub REST API, or a local file tracker
- Reporter adapters for pytest and for JUnit XML / JSON results files

Example:
    from failtrack.config import load_config
    from failtrack.reporter import build_session

    session = build_session(load_config())
    await session.on_run_start()
    session.on_test_result(result)
    summary = await session.on_run_complete()
"""

from failtrack.version import __version__

__all__ = [
    "__version__",
]
