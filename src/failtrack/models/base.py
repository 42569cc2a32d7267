"""
Base enumerations used throughout the data models.

These enums provide type-safe values for the categorical fields that are
persisted in the mapping database or exchanged with test runners.
"""

from enum import Enum


class IssueStatus(str, Enum):
    """State of a tracker issue as last observed or set by failtrack."""

    OPEN = "open"
    CLOSED = "closed"


class TestOutcome(str, Enum):
    """Normalized outcome of a single test case."""

    __test__ = False

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"  # Ignored by the lifecycle manager
