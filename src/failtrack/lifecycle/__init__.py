"""
Issue lifecycle management.

- IssueLifecycleManager: applies create/close/reopen transitions
- TestFilter: test file and branch filters
- LifecyclePlugin, TemplateDataHook: transition notifications and template data rewriting
"""

from failtrack.lifecycle.extensions import (
    HookManager,
    LifecyclePlugin,
    PluginManager,
    TemplateDataHook,
)
from failtrack.lifecycle.filters import TestFilter
from failtrack.lifecycle.manager import (
    BatchSummary,
    IssueLifecycleManager,
    SkipReason,
    TransitionAction,
    TransitionOutcome,
    collapse_results,
)

__all__ = [
    "BatchSummary",
    "HookManager",
    "IssueLifecycleManager",
    "LifecyclePlugin",
    "PluginManager",
    "SkipReason",
    "TemplateDataHook",
    "TestFilter",
    "TransitionAction",
    "TransitionOutcome",
    "collapse_results",
]
