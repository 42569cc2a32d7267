"""
Persistence for the test → issue mapping database.
"""

from failtrack.storage.mapping_store import (
    DEFAULT_DATABASE_PATH,
    MappingStore,
    StoreError,
)

__all__ = [
    "DEFAULT_DATABASE_PATH",
    "MappingStore",
    "StoreError",
]
