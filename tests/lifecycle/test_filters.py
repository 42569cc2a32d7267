"""
Unit tests for TestFilter.
"""

import pytest

from failtrack.config.models import FiltersConfig
from failtrack.lifecycle.filters import TestFilter


class TestShouldInclude:
    """Tests for file inclusion."""

    def test_defaults_include_everything(self):
        assert TestFilter().should_include("tests/test_anything.py")

    def test_exclusion_wins(self):
        test_filter = TestFilter(FiltersConfig(include=["tests/*"], exclude=["tests/slow_*"]))
        assert test_filter.should_include("tests/test_api.py")
        assert not test_filter.should_include("tests/slow_import.py")

    def test_include_restricts(self):
        test_filter = TestFilter(FiltersConfig(include=["tests/unit/*"]))
        assert test_filter.should_include("tests/unit/test_a.py")
        assert not test_filter.should_include("tests/e2e/test_b.py")

    def test_windows_paths_are_normalized(self):
        test_filter = TestFilter(FiltersConfig(exclude=["tests/e2e/*"]))
        assert not test_filter.should_include("tests\\e2e\\test_flow.py")


class TestSkipCreation:
    """Tests for skip_issue_creation patterns."""

    def test_no_patterns(self):
        assert not TestFilter().should_skip_creation("tests/test_api.py")

    def test_matching_pattern(self):
        test_filter = TestFilter(FiltersConfig(skip_issue_creation=["*flaky*"]))
        assert test_filter.should_skip_creation("tests/test_flaky_network.py")
        assert not test_filter.should_skip_creation("tests/test_api.py")


class TestBranchAllowed:
    """Tests for branch rules."""

    @pytest.mark.parametrize("branch", ["main", "feature/login", None])
    def test_defaults_allow_all(self, branch):
        assert TestFilter().branch_allowed(branch)

    def test_include_is_searched(self):
        test_filter = TestFilter(FiltersConfig(branch_include=["^(main|develop)$"]))
        assert test_filter.branch_allowed("develop")
        assert not test_filter.branch_allowed("feature/x")

    def test_exclusion_wins(self):
        test_filter = TestFilter(
            FiltersConfig(branch_include=[".*"], branch_exclude=["^dependabot/"])
        )
        assert not test_filter.branch_allowed("dependabot/pip/httpx-0.27")
        assert test_filter.branch_allowed("main")

    def test_unknown_branch_treated_as_main(self):
        test_filter = TestFilter(FiltersConfig(branch_include=["^main$"]))
        assert test_filter.branch_allowed(None)
