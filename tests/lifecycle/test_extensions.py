"""
Unit tests for lifecycle plugins and template data hooks.

Tests both the dispatch managers on their own and their effect on
IssueLifecycleManager transitions.
"""

import logging

import pytest

from failtrack.config.models import LifecycleConfig
from failtrack.lifecycle.extensions import (
    HookManager,
    LifecyclePlugin,
    PluginManager,
    TemplateDataHook,
)
from failtrack.lifecycle.manager import IssueLifecycleManager, TransitionAction
from failtrack.models import IssueMapping, IssueStatus
from failtrack.tracker.base import IssueResult


class RecordingPlugin(LifecyclePlugin):
    """Plugin that records every notification it receives."""

    def __init__(self, name="recorder", events=None):
        self.name = name
        self.events = events if events is not None else []

    async def before_create(self, result):
        self.events.append(("before_create", result.test_name))

    async def after_create(self, result, issue_number):
        self.events.append(("after_create", issue_number))

    async def before_close(self, result, issue_number):
        self.events.append(("before_close", issue_number))

    async def after_close(self, result, issue_number):
        self.events.append(("after_close", issue_number))

    async def before_reopen(self, result, issue_number):
        self.events.append(("before_reopen", issue_number))

    async def after_reopen(self, result, issue_number):
        self.events.append(("after_reopen", issue_number))


class FailingPlugin(LifecyclePlugin):
    name = "broken"

    async def before_create(self, result):
        raise RuntimeError("webhook down")


class OwnerHook(TemplateDataHook):
    """Adds an owner line to every rendered issue."""

    name = "owner"
    priority = 10

    async def process_issue_data(self, data, result):
        data["test_name"] = f"{data['test_name']} (owner: qa-team)"
        return data

    async def process_close_data(self, data, result):
        data["fixed_by"] = "release bot"
        return data

    async def process_reopen_data(self, data, result):
        data["error_message"] = "REGRESSION: " + data["error_message"]
        return data


@pytest.fixture
def make_manager(store, mock_tracker, git_info):
    def factory(plugins=(), hooks=()):
        return IssueLifecycleManager(
            store=store,
            tracker=mock_tracker,
            config=LifecycleConfig(generate_issues=True, track_issues=True),
            git_info_provider=lambda: git_info,
            plugins=plugins,
            hooks=hooks,
        )

    return factory


def seed(store, result, status, issue_number=7):
    store.set(result.identity, IssueMapping(issue_number=issue_number, status=status))


class TestPluginManager:
    """Tests for PluginManager dispatch."""

    @pytest.mark.asyncio
    async def test_notifies_in_registration_order(self, failing_result):
        events = []
        manager = PluginManager([RecordingPlugin("a", events)])
        manager.register(RecordingPlugin("b", events))

        await manager.notify("after_create", failing_result, 42)

        assert events == [("after_create", 42), ("after_create", 42)]
        assert [p.name for p in manager.plugins] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_plugin_errors_are_logged_not_raised(self, failing_result, caplog):
        recorder = RecordingPlugin()
        manager = PluginManager([FailingPlugin(), recorder])

        with caplog.at_level(logging.WARNING, logger="failtrack.lifecycle.extensions"):
            await manager.notify("before_create", failing_result)

        assert recorder.events == [("before_create", failing_result.test_name)]
        assert "webhook down" in caplog.text

    @pytest.mark.asyncio
    async def test_default_notifications_are_no_ops(self, failing_result):
        await PluginManager([LifecyclePlugin()]).notify("after_reopen", failing_result, 3)


class TestHookManager:
    """Tests for HookManager chaining."""

    @pytest.mark.asyncio
    async def test_hooks_run_in_priority_order(self, failing_result):
        class Append(TemplateDataHook):
            def __init__(self, marker, priority):
                self.name = marker
                self.priority = priority

            async def process_issue_data(self, data, result):
                data["trail"] = data.get("trail", "") + self.name
                return data

        manager = HookManager([Append("b", 20), Append("a", 10)])
        manager.register(Append("c", 30))

        data = await manager.process("issue", {}, failing_result)

        assert data["trail"] == "abc"
        assert [h.name for h in manager.hooks] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_input_is_not_mutated(self, failing_result):
        original = {"test_name": "x"}

        await HookManager([OwnerHook()]).process("issue", original, failing_result)

        assert original == {"test_name": "x"}

    @pytest.mark.asyncio
    async def test_failing_hook_keeps_previous_data(self, failing_result, caplog):
        class Broken(TemplateDataHook):
            name = "broken"
            priority = 5

            async def process_close_data(self, data, result):
                raise KeyError("missing")

        class ReturnsNone(TemplateDataHook):
            name = "none"
            priority = 6

            async def process_close_data(self, data, result):
                return None

        manager = HookManager([Broken(), ReturnsNone(), OwnerHook()])

        with caplog.at_level(logging.WARNING, logger="failtrack.lifecycle.extensions"):
            data = await manager.process("close", {"fixed_by": "dana"}, failing_result)

        assert data == {"fixed_by": "release bot"}
        assert "broken" in caplog.text
        assert "ignored" in caplog.text


class TestManagerIntegration:
    """Tests for extensions driven by IssueLifecycleManager."""

    @pytest.mark.asyncio
    async def test_create_notifies_and_rewrites_issue(self, make_manager, mock_tracker, failing_result):
        plugin = RecordingPlugin()

        summary = await make_manager(plugins=[plugin], hooks=[OwnerHook()]).process_results(
            [failing_result]
        )

        assert summary.created == 1
        assert plugin.events == [
            ("before_create", failing_result.test_name),
            ("after_create", 42),
        ]
        _, body, _ = mock_tracker.create_issue.call_args.args
        assert "rejects bad passwords (owner: qa-team)" in body

    @pytest.mark.asyncio
    async def test_close_notifies_and_rewrites_comment(self, make_manager, store, mock_tracker, passing_result):
        seed(store, passing_result, IssueStatus.OPEN)
        plugin = RecordingPlugin()

        await make_manager(plugins=[plugin], hooks=[OwnerHook()]).process_results([passing_result])

        assert plugin.events == [("before_close", 7), ("after_close", 7)]
        _, comment = mock_tracker.close_issue.call_args.args
        assert "release bot" in comment

    @pytest.mark.asyncio
    async def test_reopen_notifies_and_rewrites_comment(self, make_manager, store, mock_tracker, failing_result):
        seed(store, failing_result, IssueStatus.CLOSED)
        plugin = RecordingPlugin()

        await make_manager(plugins=[plugin], hooks=[OwnerHook()]).process_results([failing_result])

        assert plugin.events == [("before_reopen", 7), ("after_reopen", 7)]
        _, comment = mock_tracker.reopen_issue.call_args.args
        assert "REGRESSION: AssertionError" in comment

    @pytest.mark.asyncio
    async def test_failed_transition_skips_after_notification(self, make_manager, mock_tracker, failing_result):
        mock_tracker.create_issue.return_value = IssueResult.failed("HTTP 500")
        plugin = RecordingPlugin()

        summary = await make_manager(plugins=[plugin]).process_results([failing_result])

        assert summary.outcomes[0].success is False
        assert plugin.events == [("before_create", failing_result.test_name)]

    @pytest.mark.asyncio
    async def test_broken_plugin_does_not_block_create(self, make_manager, store, failing_result):
        summary = await make_manager(plugins=[FailingPlugin()]).process_results([failing_result])

        assert summary.outcomes[0].action == TransitionAction.CREATE
        assert summary.outcomes[0].success is True
        assert store.get(failing_result.identity).issue_number == 42
