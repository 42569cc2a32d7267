"""
Issue Mapping Models.

Persisted records linking a test identity to the tracker issue opened for
it. Field aliases match the on-disk JSON layout:

    {"testIdentifiers": {"<identity>": {"issueNumber": 12, "status": "open", ...}}}
"""

import json
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from failtrack.models.base import IssueStatus


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


class IssueMapping(BaseModel):
    """Mapping from one test identity to its tracker issue.

    Attributes:
        issue_number: Tracker issue number (0 = none assigned yet)
        status: Issue state as last set by failtrack
        last_failure: Most recent failure observation
        last_update: Most recent mutation of this record
        fixed_by: Author of the commit that made the test pass
        fix_commit: Commit hash that made the test pass
        fix_message: Subject of the fixing commit
        test_file_path: Human-readable breadcrumb (test file)
        test_name: Human-readable breadcrumb (full test name)
    """

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    issue_number: int = Field(default=0, ge=0, alias="issueNumber")
    status: IssueStatus = Field(default=IssueStatus.OPEN)
    last_failure: datetime | None = Field(default=None, alias="lastFailure")
    last_update: datetime | None = Field(default=None, alias="lastUpdate")
    fixed_by: str | None = Field(default=None, alias="fixedBy")
    fix_commit: str | None = Field(default=None, alias="fixCommit")
    fix_message: str | None = Field(default=None, alias="fixMessage")
    test_file_path: str | None = Field(default=None, alias="testFilePath")
    test_name: str | None = Field(default=None, alias="testName")

    @field_validator("last_failure", "last_update")
    @classmethod
    def ensure_timezone(cls, v: datetime | None) -> datetime | None:
        """Treat naive timestamps as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @property
    def is_open(self) -> bool:
        """Check if the mapped issue is open."""
        return self.status == IssueStatus.OPEN

    @property
    def is_closed(self) -> bool:
        """Check if the mapped issue is closed."""
        return self.status == IssueStatus.CLOSED

    @property
    def has_issue(self) -> bool:
        """Check if a tracker issue number has been assigned."""
        return self.issue_number > 0


class MappingDatabase(BaseModel):
    """The full collection of issue mappings, keyed by test identity."""

    model_config = ConfigDict(populate_by_name=True)

    test_identifiers: dict[str, IssueMapping] = Field(
        default_factory=dict,
        alias="testIdentifiers",
    )

    def to_json(self) -> str:
        """Serialize to the on-disk JSON layout."""
        data = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        return json.dumps(data, indent=2)

    @classmethod
    def from_json(cls, text: str) -> "MappingDatabase":
        """Parse the on-disk JSON layout.

        Raises:
            pydantic.ValidationError: If the text is not valid JSON or
                does not match the schema
        """
        return cls.model_validate_json(text)
