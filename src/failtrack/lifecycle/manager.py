"""
Issue Lifecycle Manager.

Coordinates the lifecycle of tracker issues for a batch of test results:
- Creating issues for newly failing tests
- Closing issues when their tests pass again
- Reopening closed issues when their tests regress
- Persisting the mapping database once per batch
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum

from failtrack.config.models import LifecycleConfig
from failtrack.lifecycle.extensions import (
    HookManager,
    LifecyclePlugin,
    PluginManager,
    TemplateDataHook,
)
from failtrack.lifecycle.filters import TestFilter
from failtrack.models.base import IssueStatus, TestOutcome
from failtrack.models.mapping import IssueMapping, utc_now
from failtrack.models.results import GitInfo, TestResult
from failtrack.storage.mapping_store import MappingStore
from failtrack.tracker.base import TrackerClient
from failtrack.tracker.templates import IssueTemplateEngine, TemplateType
from failtrack.utils.git import collect_git_info

logger = logging.getLogger(__name__)

# Provider of git metadata for the working tree
GitInfoProvider = Callable[[], GitInfo]


class TransitionAction(str, Enum):
    """Action taken for one test."""

    CREATE = "create"
    CLOSE = "close"
    REOPEN = "reopen"
    NONE = "none"  # No transition applies
    FILTERED = "filtered"  # Excluded by test filters


class SkipReason(str, Enum):
    """Why a whole batch was not processed."""

    DISABLED = "disabled"
    TRACKER_UNAVAILABLE = "tracker_unavailable"
    BRANCH_FILTERED = "branch_filtered"
    ERROR = "error"  # The batch raised before completing


@dataclass
class TransitionOutcome:
    """Result of processing one test.

    Attributes:
        identity: Test identity
        test_name: Full test name
        test_file_path: Test file path
        action: Transition attempted
        success: Whether the transition completed
        issue_number: Issue involved, if any
        error: Error description if the transition failed
    """

    identity: str
    test_name: str
    test_file_path: str
    action: TransitionAction
    success: bool = True
    issue_number: int | None = None
    error: str | None = None


@dataclass
class BatchSummary:
    """Result of processing a batch of test results.

    Attributes:
        outcomes: Per-test outcomes, in input order
        skipped_reason: Set when the batch was not processed at all
        saved: Whether the mapping database was written
    """

    outcomes: list[TransitionOutcome] = field(default_factory=list)
    skipped_reason: SkipReason | None = None
    saved: bool = False

    @property
    def processed(self) -> bool:
        """Check if the batch was processed."""
        return self.skipped_reason is None

    def _count(self, action: TransitionAction) -> int:
        return sum(1 for o in self.outcomes if o.action == action and o.success)

    @property
    def created(self) -> int:
        return self._count(TransitionAction.CREATE)

    @property
    def closed(self) -> int:
        return self._count(TransitionAction.CLOSE)

    @property
    def reopened(self) -> int:
        return self._count(TransitionAction.REOPEN)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)

    def summary_line(self) -> str:
        """One-line human-readable summary."""
        if not self.processed:
            return f"issue tracking skipped ({self.skipped_reason.value})"
        line = (
            f"{self.created} created, {self.closed} closed, "
            f"{self.reopened} reopened, {self.failed} failed"
        )
        return f"issue tracking: {line}"


def collapse_results(results: Iterable[TestResult]) -> list[TestResult]:
    """Keep the last non-skipped observation per test identity.

    Order follows the first appearance of each identity.
    """
    latest: dict[str, TestResult] = {}
    for result in results:
        if result.status == TestOutcome.SKIPPED:
            continue
        identity = result.identity
        if identity in latest:
            logger.debug(f"Duplicate result for {result.test_name}; keeping the last one")
        latest[identity] = result
    return list(latest.values())


class IssueLifecycleManager:
    """Drives issue transitions from test results.

    Transitions per test, based on the stored mapping:
    - untracked + failed: create (generate_issues)
    - open + passed: close (track_issues)
    - closed + failed: reopen (reopen_gate)
    - anything else: nothing

    Usage:
        manager = IssueLifecycleManager(store, tracker, config.lifecycle)
        summary = await manager.run(results)
    """

    def __init__(
        self,
        store: MappingStore,
        tracker: TrackerClient,
        config: LifecycleConfig | None = None,
        template_engine: IssueTemplateEngine | None = None,
        test_filter: TestFilter | None = None,
        git_info_provider: GitInfoProvider | None = None,
        plugins: Iterable[LifecyclePlugin] = (),
        hooks: Iterable[TemplateDataHook] = (),
    ) -> None:
        """Initialize the manager.

        Args:
            store: Mapping database
            tracker: Issue tracker client
            config: Lifecycle configuration
            template_engine: Renders issue bodies and comments
            test_filter: Test and branch filters
            git_info_provider: Returns git metadata for the working tree
            plugins: Notified before and after each tracker transition
            hooks: Rewrite template variables before rendering
        """
        self._store = store
        self._tracker = tracker
        self._config = config or LifecycleConfig()
        self._templates = template_engine or IssueTemplateEngine()
        self._filter = test_filter or TestFilter()
        self._git_info_provider = git_info_provider or collect_git_info
        self._plugins = PluginManager(plugins)
        self._hooks = HookManager(hooks)
        self._available: bool | None = None

    @property
    def store(self) -> MappingStore:
        """Get the mapping store."""
        return self._store

    @property
    def tracker(self) -> TrackerClient:
        """Get the tracker client."""
        return self._tracker

    @property
    def config(self) -> LifecycleConfig:
        """Get the lifecycle configuration."""
        return self._config

    async def check_availability(self) -> bool:
        """Check tracker availability once and cache the answer.

        Returns:
            True if the tracker can be used
        """
        if self._available is not None:
            return self._available

        try:
            available = await self._tracker.is_available()
        except Exception as e:
            logger.debug(f"Tracker availability check raised: {e}")
            available = False

        self._available = bool(available)
        if not self._available and self._config.enabled:
            logger.warning(
                f"Issue tracker '{self._tracker.name}' is unavailable; "
                "issue tracking is disabled for this run"
            )
        return self._available

    async def process_results(self, results: Iterable[TestResult]) -> BatchSummary:
        """Apply issue transitions for a batch of results.

        Never raises: per-test failures are recorded in the summary.

        Args:
            results: Test results from one run

        Returns:
            BatchSummary describing what happened
        """
        if not self._config.enabled:
            return BatchSummary(skipped_reason=SkipReason.DISABLED)

        if not await self.check_availability():
            return BatchSummary(skipped_reason=SkipReason.TRACKER_UNAVAILABLE)

        git_info = await self._collect_git_info()
        if not self._filter.branch_allowed(git_info.branch):
            logger.info(f"Issue tracking disabled on branch {git_info.branch}")
            return BatchSummary(skipped_reason=SkipReason.BRANCH_FILTERED)

        unique = collapse_results(results)
        semaphore = asyncio.Semaphore(self._config.max_concurrency)

        async def process(result: TestResult) -> TransitionOutcome:
            async with semaphore:
                return await self._process_one(result, git_info)

        outcomes = await asyncio.gather(*[process(r) for r in unique])
        summary = BatchSummary(outcomes=list(outcomes))
        logger.info(summary.summary_line())
        return summary

    def save_changes(self) -> bool:
        """Persist the mapping database if it changed.

        Returns:
            True if the database was written
        """
        return self._store.save()

    async def run(self, results: Iterable[TestResult]) -> BatchSummary:
        """Process a batch, then persist the mapping database."""
        summary = await self.process_results(results)
        summary.saved = self.save_changes()
        return summary

    async def _collect_git_info(self) -> GitInfo:
        try:
            return await asyncio.to_thread(self._git_info_provider)
        except Exception as e:
            logger.debug(f"Could not collect git metadata: {e}")
            return GitInfo()

    async def _process_one(self, result: TestResult, git_info: GitInfo) -> TransitionOutcome:
        """Process one test, converting any error into a failed outcome."""
        try:
            return await self._transition(result, git_info)
        except Exception as e:
            logger.exception(f"Unexpected error processing {result.test_name}")
            return self._outcome(result, TransitionAction.NONE, success=False, error=str(e))

    async def _transition(self, result: TestResult, git_info: GitInfo) -> TransitionOutcome:
        if not self._filter.should_include(result.test_file_path):
            logger.debug(f"Filtered out {result.test_file_path}")
            return self._outcome(result, TransitionAction.FILTERED)

        mapping = self._store.get(result.identity)

        if mapping is None or not mapping.has_issue:
            if result.failed and self._config.generate_issues:
                if self._filter.should_skip_creation(result.test_file_path):
                    logger.debug(f"Issue creation skipped for {result.test_file_path}")
                    return self._outcome(result, TransitionAction.NONE)
                return await self._create(result, git_info)
        elif mapping.is_open:
            if result.passed and self._config.track_issues:
                return await self._close(result, mapping, git_info)
        elif mapping.is_closed:
            if result.failed and self._config.reopen_enabled:
                return await self._reopen(result, mapping, git_info)

        logger.debug(f"No transition for {result.test_name} ({result.status.value})")
        issue_number = mapping.issue_number if mapping and mapping.has_issue else None
        return self._outcome(result, TransitionAction.NONE, issue_number=issue_number)

    async def _create(self, result: TestResult, git_info: GitInfo) -> TransitionOutcome:
        variables = await self._hooks.process(
            "issue", self._templates.issue_variables(result, git_info), result
        )
        title, body = self._templates.render(TemplateType.ISSUE, variables)
        await self._plugins.notify("before_create", result)
        response = await self._tracker.create_issue(title, body, list(self._config.default_labels))

        if not response.success or not response.issue_number:
            error = response.error or "Tracker returned no issue number"
            logger.warning(f"Failed to create issue for {result.test_name}: {error}")
            return self._outcome(result, TransitionAction.CREATE, success=False, error=error)

        self._store.set(
            result.identity,
            IssueMapping(
                issue_number=response.issue_number,
                status=IssueStatus.OPEN,
                last_failure=utc_now(),
                test_file_path=result.test_file_path,
                test_name=result.test_name,
            ),
        )
        await self._plugins.notify("after_create", result, response.issue_number)
        logger.info(f"Created issue #{response.issue_number} for {result.test_name}")
        return self._outcome(result, TransitionAction.CREATE, issue_number=response.issue_number)

    async def _close(
        self,
        result: TestResult,
        mapping: IssueMapping,
        git_info: GitInfo,
    ) -> TransitionOutcome:
        variables = await self._hooks.process(
            "close", self._templates.close_variables(result, mapping, git_info), result
        )
        _, comment = self._templates.render(TemplateType.CLOSE_COMMENT, variables)
        await self._plugins.notify("before_close", result, mapping.issue_number)
        response = await self._tracker.close_issue(mapping.issue_number, comment)

        if not response.success:
            logger.warning(f"Failed to close issue #{mapping.issue_number}: {response.error}")
            return self._outcome(
                result,
                TransitionAction.CLOSE,
                success=False,
                issue_number=mapping.issue_number,
                error=response.error,
            )

        self._store.update(
            result.identity,
            {"status": IssueStatus.CLOSED},
            git_info,
            test_file_path=result.test_file_path,
            test_name=result.test_name,
        )
        await self._plugins.notify("after_close", result, mapping.issue_number)
        logger.info(f"Closed issue #{mapping.issue_number} for {result.test_name}")
        return self._outcome(result, TransitionAction.CLOSE, issue_number=mapping.issue_number)

    async def _reopen(
        self,
        result: TestResult,
        mapping: IssueMapping,
        git_info: GitInfo,
    ) -> TransitionOutcome:
        variables = await self._hooks.process(
            "reopen", self._templates.reopen_variables(result, mapping, git_info), result
        )
        _, comment = self._templates.render(TemplateType.REOPEN_COMMENT, variables)
        await self._plugins.notify("before_reopen", result, mapping.issue_number)
        response = await self._tracker.reopen_issue(mapping.issue_number, comment)

        if not response.success:
            logger.warning(f"Failed to reopen issue #{mapping.issue_number}: {response.error}")
            return self._outcome(
                result,
                TransitionAction.REOPEN,
                success=False,
                issue_number=mapping.issue_number,
                error=response.error,
            )

        self._store.update(
            result.identity,
            {"status": IssueStatus.OPEN},
            git_info,
            test_file_path=result.test_file_path,
            test_name=result.test_name,
        )
        await self._plugins.notify("after_reopen", result, mapping.issue_number)
        logger.info(f"Reopened issue #{mapping.issue_number} for {result.test_name}")
        return self._outcome(result, TransitionAction.REOPEN, issue_number=mapping.issue_number)

    @staticmethod
    def _outcome(
        result: TestResult,
        action: TransitionAction,
        success: bool = True,
        issue_number: int | None = None,
        error: str | None = None,
    ) -> TransitionOutcome:
        return TransitionOutcome(
            identity=result.identity,
            test_name=result.test_name,
            test_file_path=result.test_file_path,
            action=action,
            success=success,
            issue_number=issue_number,
            error=error,
        )
