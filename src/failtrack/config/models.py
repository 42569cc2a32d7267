"""
Configuration models.

Pydantic models for every configuration section. All fields have
defaults, so an empty configuration is valid.
"""

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class ReopenGate(str, Enum):
    """Which flag allows a closed issue to be reopened."""

    TRACK = "track"  # Requires track_issues
    GENERATE = "generate"  # Requires generate_issues
    EITHER = "either"  # Requires either flag
    NEVER = "never"  # Closed issues stay closed


class TrackerType(str, Enum):
    """Supported tracker backends."""

    GITHUB_CLI = "github_cli"
    GITHUB_REST = "github_rest"
    FILE = "file"


class LogLevel(str, Enum):
    """Logging levels accepted in configuration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class LifecycleConfig(BaseModel):
    """Configuration for the issue lifecycle.

    Attributes:
        generate_issues: Create issues for newly failing tests
        track_issues: Close issues when their tests pass again
        reopen_gate: Which flag permits reopening closed issues
        max_concurrency: Maximum tests processed concurrently
        default_labels: Labels applied to created issues
    """

    generate_issues: bool = Field(
        default=False,
        description="Create issues for failing tests",
    )
    track_issues: bool = Field(
        default=False,
        description="Close issues for tests that pass again",
    )
    reopen_gate: ReopenGate = Field(
        default=ReopenGate.TRACK,
        description="Flag that permits reopening",
    )
    max_concurrency: int = Field(
        default=4,
        ge=1,
        description="Max concurrent tracker operations",
    )
    default_labels: list[str] = Field(
        default_factory=lambda: ["bug", "test-failure"],
        description="Labels for created issues",
    )

    @property
    def enabled(self) -> bool:
        """Check if any lifecycle behavior is switched on."""
        return self.generate_issues or self.track_issues

    @property
    def reopen_enabled(self) -> bool:
        """Check if closed issues may be reopened."""
        if self.reopen_gate == ReopenGate.TRACK:
            return self.track_issues
        if self.reopen_gate == ReopenGate.GENERATE:
            return self.generate_issues
        if self.reopen_gate == ReopenGate.EITHER:
            return self.enabled
        return False


class StorageConfig(BaseModel):
    """Configuration for the mapping database.

    Attributes:
        database_path: JSON database location (relative to the working directory)
    """

    database_path: str = Field(
        default="test-issue-mapping.json",
        description="Mapping database path",
    )


class TrackerConfig(BaseModel):
    """Configuration for the issue tracker backend.

    Attributes:
        type: Backend to use
        repo: Repository in owner/name form
        api_url: GitHub API base URL (REST backend)
        token_env: Environment variable holding the GitHub token
        issues_dir: Issue directory (file backend)
        timeout_seconds: Per-operation timeout
        max_retries: Maximum attempts for retryable failures
    """

    type: TrackerType = Field(
        default=TrackerType.GITHUB_CLI,
        description="Tracker backend",
    )
    repo: str | None = Field(
        default=None,
        description="Repository (owner/name)",
    )
    api_url: str = Field(
        default="https://api.github.com",
        description="GitHub API base URL",
    )
    token_env: str = Field(
        default="GITHUB_TOKEN",
        description="Token environment variable",
    )
    issues_dir: str = Field(
        default=".failtrack/issues",
        description="File tracker directory",
    )
    timeout_seconds: int = Field(
        default=30,
        ge=1,
        description="Operation timeout",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        description="Max attempts",
    )

    @field_validator("repo")
    @classmethod
    def validate_repo(cls, v: str | None) -> str | None:
        """Validate owner/name format."""
        if v is not None and not re.fullmatch(r"[\w.-]+/[\w.-]+", v):
            raise ValueError(f"Repository must be in owner/name form: {v}")
        return v


class TemplatesConfig(BaseModel):
    """Configuration for issue templates.

    Attributes:
        template_dir: Directory with issue.md, close_comment.md and
            reopen_comment.md overrides
    """

    template_dir: str | None = Field(
        default=None,
        description="Custom template directory",
    )


class FiltersConfig(BaseModel):
    """Configuration for test and branch filters.

    Attributes:
        include: Glob patterns of test files to track
        exclude: Glob patterns of test files to ignore
        skip_issue_creation: Glob patterns of test files that never get new issues
        branch_include: Regexes of branches where tracking runs
        branch_exclude: Regexes of branches where tracking never runs
    """

    include: list[str] = Field(default_factory=lambda: ["*"])
    exclude: list[str] = Field(default_factory=list)
    skip_issue_creation: list[str] = Field(default_factory=list)
    branch_include: list[str] = Field(default_factory=lambda: [".*"])
    branch_exclude: list[str] = Field(default_factory=list)

    @field_validator("branch_include", "branch_exclude")
    @classmethod
    def validate_regexes(cls, v: list[str]) -> list[str]:
        """Reject invalid regular expressions early."""
        for pattern in v:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"Invalid branch pattern {pattern!r}: {e}") from e
        return v


class LoggingConfig(BaseModel):
    """Configuration for logging.

    Attributes:
        level: Minimum level logged
        file: Optional log file
    """

    level: LogLevel = Field(default=LogLevel.WARNING)
    file: str | None = Field(default=None)

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        """Accept lowercase level names."""
        return v.upper() if isinstance(v, str) else v


class FailtrackConfig(BaseModel):
    """Root configuration.

    Attributes:
        lifecycle: Issue lifecycle flags
        storage: Mapping database location
        tracker: Tracker backend
        templates: Template overrides
        filters: Test and branch filters
        logging: Logging setup
    """

    lifecycle: LifecycleConfig = Field(default_factory=LifecycleConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    tracker: TrackerConfig = Field(default_factory=TrackerConfig)
    templates: TemplatesConfig = Field(default_factory=TemplatesConfig)
    filters: FiltersConfig = Field(default_factory=FiltersConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def to_yaml_dict(self) -> dict[str, Any]:
        """Convert to a YAML-friendly dictionary."""
        return self.model_dump(mode="json", exclude_none=True)
