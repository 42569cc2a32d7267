"""
Test runner integration.

- TrackingSession: per-run buffering and processing of results
- Normalizers for TestResult, camelCase/snake_case dicts and Jest assertions
- Results file loading (JUnit XML, JSON, Jest --json)
- pytest plugin (failtrack.reporter.pytest_plugin)
"""

from failtrack.reporter.normalize import normalize_jest_assertion, normalize_result
from failtrack.reporter.results_file import ResultsFileError, load_results
from failtrack.reporter.session import TrackingSession, build_session

__all__ = [
    "ResultsFileError",
    "TrackingSession",
    "build_session",
    "load_results",
    "normalize_jest_assertion",
    "normalize_result",
]
