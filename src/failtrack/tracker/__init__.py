"""
Issue tracker clients for failtrack.

Backends:
- GitHubCliTracker: the gh command line tool
- GitHubRestTracker: the GitHub REST API over httpx
- FileTracker: JSON files in a local directory
"""

from failtrack.tracker.base import (
    IssueResult,
    RetryableTrackerError,
    TrackerClient,
    TrackerError,
)
from failtrack.tracker.cli_client import GitHubCliTracker
from failtrack.tracker.factory import create_tracker
from failtrack.tracker.file_client import FileTracker
from failtrack.tracker.rest_client import GitHubRestTracker
from failtrack.tracker.templates import (
    IssueTemplate,
    IssueTemplateEngine,
    TemplateType,
)

__all__ = [
    "IssueResult",
    "RetryableTrackerError",
    "TrackerClient",
    "TrackerError",
    "GitHubCliTracker",
    "GitHubRestTracker",
    "FileTracker",
    "create_tracker",
    "IssueTemplate",
    "IssueTemplateEngine",
    "TemplateType",
]
