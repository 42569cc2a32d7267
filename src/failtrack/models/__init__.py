"""
Data models for failtrack.

- Enumerations for issue state and test outcome
- Persisted issue mapping records and the mapping database
- Normalized test results and git metadata
"""

from failtrack.models.base import IssueStatus, TestOutcome
from failtrack.models.mapping import IssueMapping, MappingDatabase, utc_now
from failtrack.models.results import GitInfo, TestResult

__all__ = [
    "IssueStatus",
    "TestOutcome",
    "IssueMapping",
    "MappingDatabase",
    "utc_now",
    "GitInfo",
    "TestResult",
]
