"""
Issue Template Engine.

Renders issue bodies and lifecycle comments from string.Template templates.
Default templates can be replaced by files in a template directory.
"""

import logging
import os
import platform
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from string import Template
from typing import Any

from failtrack.models.mapping import IssueMapping, utc_now
from failtrack.models.results import GitInfo, TestResult
from failtrack.utils.git import is_ci

logger = logging.getLogger(__name__)


class TemplateType(str, Enum):
    """Kind of rendered content."""

    ISSUE = "issue"
    CLOSE_COMMENT = "close_comment"
    REOPEN_COMMENT = "reopen_comment"


@dataclass
class IssueTemplate:
    """A named template.

    Attributes:
        template_type: What the template renders
        body_template: string.Template source for the body
        title_template: string.Template source for the title (issues only)
    """

    template_type: TemplateType
    body_template: str
    title_template: str = ""


DEFAULT_ISSUE_TEMPLATE = IssueTemplate(
    template_type=TemplateType.ISSUE,
    title_template="Test Failure: ${full_test_name}",
    body_template="""
## Test Failure

**File:** `${test_file_path}`
**Suite:** ${test_suite}
**Test:** ${test_name}
**Failed at:** ${failure_time}
**Duration:** ${duration}

## Source Control

**Branch:** ${branch}
**Commit:** ${commit}

## Environment

**Environment:** ${environment}
**Build:** ${ci_build_url}
**Python:** ${python_version}
**Platform:** ${platform}

## Error

```
${error_message}
```

## Stack Trace

```
${stack_trace}
```

This issue is managed automatically. It will be closed when the test passes.
""".strip(),
)


DEFAULT_CLOSE_COMMENT_TEMPLATE = IssueTemplate(
    template_type=TemplateType.CLOSE_COMMENT,
    body_template="""
## Test Passing

`${full_test_name}` in `${test_file_path}` is passing again.

**Fixed by:** ${fixed_by}
**Commit:** ${fix_commit}
**Commit message:** ${fix_message}
**Failing for:** ${failing_duration}
**Passed at:** ${fixed_time}

Closing automatically.
""".strip(),
)


DEFAULT_REOPEN_COMMENT_TEMPLATE = IssueTemplate(
    template_type=TemplateType.REOPEN_COMMENT,
    body_template="""
## Test Failing Again

`${full_test_name}` in `${test_file_path}` failed after being fixed.

**Failed at:** ${failure_time}
**Branch:** ${branch}
**Commit:** ${commit}

### Error

```
${error_message}
```

### Previous Fix

**Fixed by:** ${previous_fixed_by}
**Commit:** ${previous_fix_commit}
**Commit message:** ${previous_fix_message}

Reopening automatically.
""".strip(),
)

# File names looked up in a custom template directory
TEMPLATE_FILES = {
    TemplateType.ISSUE: "issue.md",
    TemplateType.CLOSE_COMMENT: "close_comment.md",
    TemplateType.REOPEN_COMMENT: "reopen_comment.md",
}

NOT_AVAILABLE = "N/A"


def format_duration(seconds: float) -> str:
    """Format a duration in seconds for humans, e.g. '2d 3h', '4m 10s'."""
    seconds = int(max(seconds, 0))
    days, remainder = divmod(seconds, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, secs = divmod(remainder, 60)
    if days:
        return f"{days}d {hours}h"
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def ci_build_url() -> str | None:
    """Link to the current CI run, when the provider exposes one."""
    if os.environ.get("GITHUB_RUN_ID"):
        server = os.environ.get("GITHUB_SERVER_URL", "https://github.com")
        repository = os.environ.get("GITHUB_REPOSITORY", "")
        return f"{server}/{repository}/actions/runs/{os.environ['GITHUB_RUN_ID']}"
    return os.environ.get("BUILD_URL") or os.environ.get("CI_JOB_URL")


class IssueTemplateEngine:
    """Renders tracker content for test lifecycle events.

    Supports:
    - Variable substitution using ${variable} syntax
    - Per-type overrides loaded from a template directory
    - Registration of custom templates at runtime

    Usage:
        engine = IssueTemplateEngine(template_dir="ci/templates")
        title, body = engine.render_issue(result, git_info)
        comment = engine.render_close_comment(result, mapping, git_info)
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        """Initialize the engine.

        Args:
            template_dir: Optional directory with issue.md,
                close_comment.md and reopen_comment.md overrides
        """
        self._templates: dict[TemplateType, IssueTemplate] = {
            TemplateType.ISSUE: DEFAULT_ISSUE_TEMPLATE,
            TemplateType.CLOSE_COMMENT: DEFAULT_CLOSE_COMMENT_TEMPLATE,
            TemplateType.REOPEN_COMMENT: DEFAULT_REOPEN_COMMENT_TEMPLATE,
        }
        if template_dir:
            self._load_directory(Path(template_dir))

    def _load_directory(self, template_dir: Path) -> None:
        """Replace default bodies with files found in template_dir."""
        if not template_dir.is_dir():
            logger.warning(f"Template directory not found: {template_dir}")
            return
        for template_type, filename in TEMPLATE_FILES.items():
            path = template_dir / filename
            if not path.is_file():
                continue
            try:
                body = path.read_text(encoding="utf-8").strip()
            except OSError as e:
                logger.warning(f"Failed to read template {path}: {e}")
                continue
            current = self._templates[template_type]
            self.register_template(
                IssueTemplate(
                    template_type=template_type,
                    body_template=body,
                    title_template=current.title_template,
                )
            )
            logger.debug(f"Loaded {template_type.value} template from {path}")

    def register_template(self, template: IssueTemplate) -> None:
        """Register a template, replacing the current one of its type."""
        self._templates[template.template_type] = template

    def get_template(self, template_type: TemplateType) -> IssueTemplate:
        """Get the active template of a type."""
        return self._templates[template_type]

    def render(self, template_type: TemplateType, variables: dict[str, Any]) -> tuple[str, str]:
        """Render the active template of a type with prepared variables.

        Returns:
            Tuple of (title, body); title is empty for comment templates
        """
        template = self._templates[template_type]
        title = Template(template.title_template).safe_substitute(variables)
        body = Template(template.body_template).safe_substitute(variables)
        return title, body

    def render_issue(
        self,
        result: TestResult,
        git_info: GitInfo | None = None,
    ) -> tuple[str, str]:
        """Render a new issue for a failing test.

        Returns:
            Tuple of (title, body)
        """
        return self.render(TemplateType.ISSUE, self.issue_variables(result, git_info))

    def render_close_comment(
        self,
        result: TestResult,
        mapping: IssueMapping | None = None,
        git_info: GitInfo | None = None,
    ) -> str:
        """Render the comment left when a test passes again."""
        variables = self.close_variables(result, mapping, git_info)
        return self.render(TemplateType.CLOSE_COMMENT, variables)[1]

    def render_reopen_comment(
        self,
        result: TestResult,
        mapping: IssueMapping | None = None,
        git_info: GitInfo | None = None,
    ) -> str:
        """Render the comment left when a fixed test fails again."""
        variables = self.reopen_variables(result, mapping, git_info)
        return self.render(TemplateType.REOPEN_COMMENT, variables)[1]

    def issue_variables(
        self,
        result: TestResult,
        git_info: GitInfo | None = None,
    ) -> dict[str, Any]:
        """Variables for the new issue template."""
        return self._base_variables(result, git_info)

    def close_variables(
        self,
        result: TestResult,
        mapping: IssueMapping | None = None,
        git_info: GitInfo | None = None,
    ) -> dict[str, Any]:
        """Variables for the close comment template."""
        git_info = git_info or GitInfo()
        now = utc_now()

        variables = self._base_variables(result, git_info)
        variables["fixed_by"] = git_info.author or "Unknown"
        variables["fix_commit"] = git_info.commit or "Unknown"
        variables["fix_message"] = git_info.message or NOT_AVAILABLE
        variables["fixed_time"] = now.isoformat()
        last_failure: datetime | None = mapping.last_failure if mapping else None
        if last_failure is not None:
            variables["failing_duration"] = format_duration(
                (now - last_failure).total_seconds()
            )
        else:
            variables["failing_duration"] = "unknown"
        return variables

    def reopen_variables(
        self,
        result: TestResult,
        mapping: IssueMapping | None = None,
        git_info: GitInfo | None = None,
    ) -> dict[str, Any]:
        """Variables for the reopen comment template."""
        variables = self._base_variables(result, git_info)
        variables["previous_fixed_by"] = (mapping.fixed_by if mapping else None) or NOT_AVAILABLE
        variables["previous_fix_commit"] = (mapping.fix_commit if mapping else None) or NOT_AVAILABLE
        variables["previous_fix_message"] = (mapping.fix_message if mapping else None) or NOT_AVAILABLE
        return variables

    def _base_variables(
        self,
        result: TestResult,
        git_info: GitInfo | None,
    ) -> dict[str, Any]:
        """Variables shared by every template."""
        git_info = git_info or GitInfo()
        if result.duration_ms is not None:
            duration = f"{result.duration_ms:.0f} ms"
        else:
            duration = NOT_AVAILABLE

        return {
            "full_test_name": result.test_name,
            "test_name": result.description,
            "test_suite": result.test_suite_name or NOT_AVAILABLE,
            "test_file_path": result.test_file_path,
            "status": result.status.value,
            "failure_time": utc_now().isoformat(),
            "duration": duration,
            "branch": git_info.branch or "unknown",
            "commit": git_info.commit or "unknown",
            "commit_author": git_info.author or "unknown",
            "commit_message": git_info.message or "",
            "environment": "CI" if is_ci() else "Local",
            "ci_build_url": ci_build_url() or NOT_AVAILABLE,
            "python_version": platform.python_version(),
            "platform": f"{platform.system()} {platform.release()}",
            "error_message": result.error_message or "No error message",
            "stack_trace": result.error_stack or result.error_message or "No stack trace",
        }
