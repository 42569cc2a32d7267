"""
Result normalization.

Converts raw per-test records from different runners into TestResult.
"""

from typing import Any

from failtrack.models.base import TestOutcome
from failtrack.models.results import TestResult
from failtrack.utils.identity import ANCESTOR_SEPARATOR, full_test_name

# Jest assertion statuses that do not represent a pass or a failure
JEST_SKIP_STATUSES = {"pending", "todo", "skipped", "disabled", "focused"}

# Keys that identify a Jest assertion result
JEST_KEYS = {"ancestorTitles", "failureMessages", "fullName"}


def normalize_outcome(value: Any) -> TestOutcome:
    """Map a runner status string to a TestOutcome.

    Raises:
        ValueError: If the status is not recognized
    """
    if isinstance(value, TestOutcome):
        return value
    status = str(value).strip().lower()
    if status in ("passed", "pass", "success", "ok"):
        return TestOutcome.PASSED
    if status in ("failed", "fail", "failure", "error", "broken"):
        return TestOutcome.FAILED
    if status in JEST_SKIP_STATUSES or status in ("skip", "xfail", "xpass"):
        return TestOutcome.SKIPPED
    raise ValueError(f"Unknown test status: {value!r}")


def normalize_jest_assertion(
    assertion: dict[str, Any],
    test_file_path: str | None = None,
) -> TestResult:
    """Normalize a Jest assertion result.

    Args:
        assertion: Dict with ancestorTitles, title, fullName, status,
            failureMessages and duration
        test_file_path: File path when the assertion does not carry one

    Raises:
        ValueError: If the file path or status is missing
    """
    file_path = assertion.get("testFilePath") or test_file_path
    if not file_path:
        raise ValueError("Jest assertion has no test file path")

    ancestors = [str(a) for a in assertion.get("ancestorTitles") or []]
    title = assertion.get("title")
    if title:
        name = full_test_name(ancestors, str(title))
    else:
        name = str(assertion.get("fullName") or "")
    if not name:
        raise ValueError("Jest assertion has no test name")

    messages = [str(m) for m in assertion.get("failureMessages") or []]
    error_stack = "\n\n".join(messages) or None
    error_message = messages[0].splitlines()[0] if messages and messages[0] else None

    return TestResult(
        test_file_path=file_path,
        test_suite_name=ANCESTOR_SEPARATOR.join(ancestors),
        test_name=name,
        status=normalize_outcome(assertion.get("status", "")),
        error_message=error_message,
        error_stack=error_stack,
        duration_ms=assertion.get("duration"),
    )


def normalize_result(raw: Any, test_file_path: str | None = None) -> TestResult:
    """Normalize any supported raw result into a TestResult.

    Accepts a TestResult, a Jest assertion dict, or a dict with TestResult
    fields in snake_case or camelCase.

    Raises:
        ValueError: If the record cannot be normalized
    """
    if isinstance(raw, TestResult):
        return raw
    if not isinstance(raw, dict):
        raise ValueError(f"Unsupported result type: {type(raw).__name__}")

    if JEST_KEYS & raw.keys():
        return normalize_jest_assertion(raw, test_file_path)

    data = dict(raw)
    if test_file_path and not (data.get("test_file_path") or data.get("testFilePath")):
        data["test_file_path"] = test_file_path
    if "status" in data:
        data["status"] = normalize_outcome(data["status"])
    return TestResult.model_validate(data)
