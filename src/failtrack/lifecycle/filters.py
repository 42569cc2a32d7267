"""
Test and branch filters.

Decides which tests take part in issue tracking, which may get new issues,
and on which branches tracking runs at all.
"""

import fnmatch
import re

from failtrack.config.models import FiltersConfig
from failtrack.utils.identity import normalize_path

# Branch assumed when git cannot tell
DEFAULT_BRANCH = "main"


class TestFilter:
    """Applies FiltersConfig patterns.

    File patterns are shell globs matched against the normalized test file
    path. Branch patterns are regular expressions searched in the branch
    name. Exclusions always win over inclusions.
    """

    __test__ = False

    def __init__(self, config: FiltersConfig | None = None) -> None:
        self._config = config or FiltersConfig()
        self._branch_include = [re.compile(p) for p in self._config.branch_include]
        self._branch_exclude = [re.compile(p) for p in self._config.branch_exclude]

    @property
    def config(self) -> FiltersConfig:
        """Get filter configuration."""
        return self._config

    @staticmethod
    def _matches(path: str, patterns: list[str]) -> bool:
        return any(fnmatch.fnmatchcase(path, pattern) for pattern in patterns)

    def should_include(self, test_file_path: str) -> bool:
        """Check if a test file takes part in issue tracking."""
        path = normalize_path(test_file_path)
        if self._matches(path, self._config.exclude):
            return False
        if "*" in self._config.include:
            return True
        return self._matches(path, self._config.include)

    def should_skip_creation(self, test_file_path: str) -> bool:
        """Check if new issues must not be created for a test file."""
        return self._matches(normalize_path(test_file_path), self._config.skip_issue_creation)

    def branch_allowed(self, branch: str | None) -> bool:
        """Check if tracking runs on a branch."""
        name = branch or DEFAULT_BRANCH
        if any(p.search(name) for p in self._branch_exclude):
            return False
        return any(p.search(name) for p in self._branch_include)
