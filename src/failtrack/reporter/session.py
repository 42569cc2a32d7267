"""
Tracking Session.

Per-run adapter between a test runner and the lifecycle manager. The
runner feeds results as they arrive; the batch is processed once the run
completes. Nothing here raises into the runner.
"""

import logging
from collections.abc import Callable, Iterable
from typing import Any

from failtrack.config.models import FailtrackConfig
from failtrack.lifecycle.extensions import LifecyclePlugin, TemplateDataHook
from failtrack.lifecycle.filters import TestFilter
from failtrack.lifecycle.manager import BatchSummary, IssueLifecycleManager, SkipReason
from failtrack.models.results import TestResult
from failtrack.reporter.normalize import normalize_result
from failtrack.storage.mapping_store import MappingStore
from failtrack.tracker.factory import create_tracker
from failtrack.tracker.templates import IssueTemplateEngine

logger = logging.getLogger(__name__)

Normalizer = Callable[..., TestResult]


class TrackingSession:
    """Collects results for one run and processes them at the end.

    Usage:
        session = build_session(config)
        await session.on_run_start()
        for raw in runner_results:
            session.on_test_result(raw)
        summary = await session.on_run_complete()
    """

    def __init__(
        self,
        manager: IssueLifecycleManager,
        normalizer: Normalizer = normalize_result,
    ) -> None:
        """Initialize the session.

        Args:
            manager: Lifecycle manager for this run
            normalizer: Converts raw runner records to TestResult
        """
        self._manager = manager
        self._normalizer = normalizer
        self.pending_results: list[TestResult] = []
        self.summary: BatchSummary | None = None

    @property
    def manager(self) -> IssueLifecycleManager:
        """Get the lifecycle manager."""
        return self._manager

    async def on_run_start(self) -> bool:
        """Check tracker availability before tests start.

        Returns:
            True if the tracker is available
        """
        try:
            return await self._manager.check_availability()
        except Exception as e:
            logger.warning(f"Tracker availability check failed: {e}")
            return False

    def on_test_result(self, raw: Any, test_file_path: str | None = None) -> TestResult | None:
        """Normalize and buffer one raw result.

        Returns:
            The normalized result, or None if it could not be normalized
        """
        try:
            result = self._normalizer(raw, test_file_path)
        except ValueError as e:
            logger.warning(f"Ignoring unrecognized test result: {e}")
            return None
        self.pending_results.append(result)
        return result

    async def on_run_complete(self) -> BatchSummary:
        """Process buffered results and persist the mapping database.

        Returns:
            BatchSummary for the run
        """
        results, self.pending_results = self.pending_results, []
        try:
            self.summary = await self._manager.run(results)
        except Exception:
            logger.exception("Issue tracking failed for this run")
            self.summary = BatchSummary(skipped_reason=SkipReason.ERROR)
        finally:
            await self.aclose()
        return self.summary

    async def aclose(self) -> None:
        """Release tracker resources."""
        try:
            await self._manager.tracker.aclose()
        except Exception as e:
            logger.debug(f"Error closing tracker: {e}")


def build_session(
    config: FailtrackConfig,
    plugins: Iterable[LifecyclePlugin] = (),
    hooks: Iterable[TemplateDataHook] = (),
) -> TrackingSession:
    """Wire a TrackingSession from configuration.

    Args:
        config: Resolved configuration
        plugins: Lifecycle plugins for the manager
        hooks: Template data hooks for the manager

    Returns:
        Ready-to-use TrackingSession
    """
    manager = IssueLifecycleManager(
        store=MappingStore(config.storage.database_path),
        tracker=create_tracker(config.tracker),
        config=config.lifecycle,
        template_engine=IssueTemplateEngine(config.templates.template_dir),
        test_filter=TestFilter(config.filters),
        plugins=plugins,
        hooks=hooks,
    )
    return TrackingSession(manager)
