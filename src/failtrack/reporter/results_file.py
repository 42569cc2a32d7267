"""
Results file loading.

Reads test results produced by a finished run:
- JUnit XML (pytest --junitxml, most CI tooling)
- JSON lists of result records
- Jest --json output
"""

import json
import logging
import math
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any

from failtrack.models.base import TestOutcome
from failtrack.models.results import TestResult
from failtrack.reporter.normalize import normalize_jest_assertion, normalize_result

logger = logging.getLogger(__name__)


class ResultsFileError(Exception):
    """Raised when a results file cannot be read or understood."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


def load_results(path: str | Path) -> list[TestResult]:
    """Load test results from a file.

    The format is chosen by extension: .xml is JUnit, anything else JSON.

    Raises:
        ResultsFileError: If the file is missing or malformed
    """
    path = Path(path)
    if not path.is_file():
        raise ResultsFileError(f"Results file not found: {path}", path)

    if path.suffix.lower() == ".xml":
        return load_junit_xml(path)
    return load_json(path)


def load_json(path: Path) -> list[TestResult]:
    """Load a JSON list of results or Jest --json output."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ResultsFileError(f"Failed to read {path}: {e}", path) from e

    if isinstance(data, dict) and "testResults" in data:
        return _from_jest_report(data)
    if isinstance(data, list):
        return _from_records(data)
    raise ResultsFileError(f"Unrecognized JSON results layout in {path}", path)


def _from_records(records: list[Any]) -> list[TestResult]:
    results = []
    for index, record in enumerate(records):
        try:
            results.append(normalize_result(record))
        except ValueError as e:
            logger.warning(f"Skipping result record {index}: {e}")
    return results


def _from_jest_report(report: dict[str, Any]) -> list[TestResult]:
    results = []
    for suite in report.get("testResults") or []:
        file_path = suite.get("name") or suite.get("testFilePath")
        for assertion in suite.get("assertionResults") or []:
            try:
                results.append(normalize_jest_assertion(assertion, file_path))
            except ValueError as e:
                logger.warning(f"Skipping Jest assertion in {file_path}: {e}")
    return results


def load_junit_xml(path: Path) -> list[TestResult]:
    """Load a JUnit XML report.

    Test names use node id form (file::Class::test) so identities match
    those recorded by the pytest plugin.
    """
    try:
        root = ET.parse(path).getroot()
    except (OSError, ET.ParseError) as e:
        raise ResultsFileError(f"Failed to parse {path}: {e}", path) from e

    results = []
    for suite in root.iter("testsuite"):
        for testcase in suite.findall("testcase"):
            try:
                results.append(_from_testcase(testcase, suite))
            except ValueError as e:
                logger.warning(f"Skipping testcase {testcase.get('name', '')!r}: {e}")
    return results


def _from_testcase(testcase: ET.Element, suite: ET.Element) -> TestResult:
    name = testcase.get("name", "")
    classname = testcase.get("classname", "")
    file_path = testcase.get("file") or suite.get("file")
    module_path, classes = split_classname(classname)
    if not file_path:
        file_path = module_path or suite.get("name", "") or "unknown"

    failure = testcase.find("failure")
    if failure is None:
        failure = testcase.find("error")

    if failure is not None:
        status = TestOutcome.FAILED
    elif testcase.find("skipped") is not None:
        status = TestOutcome.SKIPPED
    else:
        status = TestOutcome.PASSED

    duration_ms = None
    try:
        seconds = float(testcase.get("time", ""))
    except ValueError:
        seconds = None
    if seconds is not None and math.isfinite(seconds) and seconds >= 0:
        duration_ms = seconds * 1000

    return TestResult(
        test_file_path=file_path,
        test_suite_name="::".join(classes),
        test_name="::".join([file_path, *classes, name]),
        status=status,
        error_message=failure.get("message") if failure is not None else None,
        error_stack=(failure.text or None) if failure is not None else None,
        duration_ms=duration_ms,
    )


def split_classname(classname: str) -> tuple[str, list[str]]:
    """Split a dotted JUnit classname into a module path and class names.

    Components starting with an uppercase letter are treated as classes,
    e.g. "tests.test_api.TestLogin" -> ("tests/test_api.py", ["TestLogin"]).
    """
    if not classname:
        return "", []
    parts = classname.split(".")
    index = len(parts)
    while index > 0 and parts[index - 1][:1].isupper():
        index -= 1
    module = parts[:index]
    classes = parts[index:]
    if not module:
        return "", classes
    return "/".join(module) + ".py", classes
