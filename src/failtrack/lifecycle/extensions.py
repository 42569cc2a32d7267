"""
Lifecycle extensions.

Two extension points around issue transitions:
- LifecyclePlugin: notified before and after each create, close and reopen
- TemplateDataHook: rewrites template variables before rendering

Extension errors are logged and never interrupt a transition.
"""

import logging
from collections.abc import Iterable
from typing import Any

from failtrack.models.results import TestResult

logger = logging.getLogger(__name__)


class LifecyclePlugin:
    """Base class for lifecycle plugins.

    Override only the notifications you need. Issue numbers are passed to
    every notification except before_create.

    Usage:
        class SlackNotifier(LifecyclePlugin):
            name = "slack"

            async def after_create(self, result, issue_number):
                await post_message(f"New failure: {result.test_name} (#{issue_number})")
    """

    name: str = "plugin"

    async def before_create(self, result: TestResult) -> None:
        pass

    async def after_create(self, result: TestResult, issue_number: int) -> None:
        pass

    async def before_close(self, result: TestResult, issue_number: int) -> None:
        pass

    async def after_close(self, result: TestResult, issue_number: int) -> None:
        pass

    async def before_reopen(self, result: TestResult, issue_number: int) -> None:
        pass

    async def after_reopen(self, result: TestResult, issue_number: int) -> None:
        pass


class TemplateDataHook:
    """Base class for template data hooks.

    Each method receives the variables about to be rendered and returns
    the variables to render instead. Hooks run in ascending priority.
    """

    name: str = "hook"
    priority: int = 100

    async def process_issue_data(self, data: dict[str, Any], result: TestResult) -> dict[str, Any]:
        return data

    async def process_close_data(self, data: dict[str, Any], result: TestResult) -> dict[str, Any]:
        return data

    async def process_reopen_data(self, data: dict[str, Any], result: TestResult) -> dict[str, Any]:
        return data


class PluginManager:
    """Dispatches lifecycle notifications to registered plugins."""

    def __init__(self, plugins: Iterable[LifecyclePlugin] = ()) -> None:
        self._plugins: list[LifecyclePlugin] = list(plugins)

    @property
    def plugins(self) -> list[LifecyclePlugin]:
        """Get registered plugins, in registration order."""
        return list(self._plugins)

    def register(self, plugin: LifecyclePlugin) -> None:
        """Register a plugin."""
        self._plugins.append(plugin)

    async def notify(self, event: str, result: TestResult, *args: Any) -> None:
        """Call the named notification on every plugin.

        Args:
            event: Notification name, e.g. "before_create"
            result: Test result being processed
            *args: Extra notification arguments (the issue number)
        """
        for plugin in self._plugins:
            handler = getattr(plugin, event, None)
            if handler is None:
                continue
            try:
                await handler(result, *args)
            except Exception as e:
                logger.warning(f"Plugin '{plugin.name}' failed in {event}: {e}")


class HookManager:
    """Runs template data hooks in priority order."""

    def __init__(self, hooks: Iterable[TemplateDataHook] = ()) -> None:
        self._hooks: list[TemplateDataHook] = []
        for hook in hooks:
            self.register(hook)

    @property
    def hooks(self) -> list[TemplateDataHook]:
        """Get registered hooks, lowest priority first."""
        return list(self._hooks)

    def register(self, hook: TemplateDataHook) -> None:
        """Register a hook, keeping priority order."""
        self._hooks.append(hook)
        self._hooks.sort(key=lambda h: h.priority)

    async def process(self, stage: str, data: dict[str, Any], result: TestResult) -> dict[str, Any]:
        """Pass template variables through every hook for a stage.

        A hook that raises or returns something other than a dict is
        skipped; the variables from the previous hook are kept.

        Args:
            stage: "issue", "close" or "reopen"
            data: Template variables
            result: Test result being rendered

        Returns:
            The processed variables
        """
        processed = dict(data)
        method = f"process_{stage}_data"
        for hook in self._hooks:
            handler = getattr(hook, method, None)
            if handler is None:
                continue
            try:
                updated = await handler(dict(processed), result)
            except Exception as e:
                logger.warning(f"Template hook '{hook.name}' failed in {method}: {e}")
                continue
            if not isinstance(updated, dict):
                logger.warning(
                    f"Template hook '{hook.name}' returned {type(updated).__name__} "
                    f"from {method}; ignored"
                )
                continue
            processed = updated
        return processed
