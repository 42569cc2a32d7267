"""
Utility modules for failtrack.

- Test identity hashing
- Git metadata collection
"""

from failtrack.utils.identity import describe, full_test_name, identify

__all__ = [
    "identify",
    "describe",
    "full_test_name",
]
