"""
Mapping Store.

Durable record of which tracker issue belongs to which test. The database
is a single JSON document loaded on construction, mutated in memory, and
persisted with one atomic write per batch.
"""

import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from failtrack.models.base import IssueStatus
from failtrack.models.mapping import IssueMapping, MappingDatabase, utc_now
from failtrack.models.results import GitInfo

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_PATH = "test-issue-mapping.json"

# Recorded for fix provenance when git metadata is unavailable
UNKNOWN = "Unknown"


class StoreError(Exception):
    """Raised when the mapping database cannot be read or written."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class MappingStore:
    """Persistent identity → issue mapping.

    The in-memory database is the source of truth during a run. Mutations
    only mark the store dirty; nothing reaches disk until save().

    Usage:
        store = MappingStore("test-issue-mapping.json")
        mapping = store.get(identity)
        store.set(identity, IssueMapping(issue_number=12))
        store.save()
    """

    def __init__(self, path: str | Path = DEFAULT_DATABASE_PATH) -> None:
        """Initialize the store and load the database.

        Args:
            path: Location of the JSON database file
        """
        self._path = Path(path)
        self._database = MappingDatabase()
        self._dirty = False
        self.load()

    @property
    def path(self) -> Path:
        """Get the database file path."""
        return self._path

    @property
    def is_dirty(self) -> bool:
        """Check if there are unsaved changes."""
        return self._dirty

    def __len__(self) -> int:
        return len(self._database.test_identifiers)

    def __contains__(self, identity: object) -> bool:
        return identity in self._database.test_identifiers

    def load(self) -> MappingDatabase:
        """Load the database from disk, replacing in-memory state.

        A missing file yields an empty database. An unreadable or invalid
        file is logged and also yields an empty database.

        Returns:
            The loaded database
        """
        try:
            self._database = self._read()
        except StoreError as e:
            logger.error(f"{e}; starting with an empty mapping database")
            self._database = MappingDatabase()
        self._dirty = False
        return self._database

    def _read(self) -> MappingDatabase:
        if not self._path.exists():
            return MappingDatabase()
        try:
            text = self._path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StoreError(f"Failed to read {self._path}: {e}", self._path) from e
        try:
            return MappingDatabase.from_json(text)
        except ValidationError as e:
            raise StoreError(
                f"Invalid mapping database {self._path}: {e.error_count()} error(s)",
                self._path,
            ) from e

    def get(self, identity: str) -> IssueMapping | None:
        """Get the mapping for a test identity."""
        return self._database.test_identifiers.get(identity)

    def set(self, identity: str, mapping: IssueMapping) -> None:
        """Insert or replace the mapping for a test identity.

        Args:
            identity: Test identity
            mapping: Mapping to store
        """
        now = utc_now()
        updates: dict[str, Any] = {"last_update": now}
        if mapping.status == IssueStatus.OPEN and mapping.last_failure is None:
            updates["last_failure"] = now
        self._database.test_identifiers[identity] = mapping.model_copy(update=updates)
        self._dirty = True

    def update(
        self,
        identity: str,
        changes: dict[str, Any],
        git_info: GitInfo | None = None,
        *,
        test_file_path: str | None = None,
        test_name: str | None = None,
    ) -> bool:
        """Merge changes into an existing mapping.

        Args:
            identity: Test identity
            changes: Field values to apply (field names or JSON aliases)
            git_info: Commit metadata recorded when the issue closes
            test_file_path: Breadcrumb applied only if none is stored
            test_name: Breadcrumb applied only if none is stored

        Returns:
            True if the mapping existed and was updated
        """
        current = self._database.test_identifiers.get(identity)
        if current is None:
            return False

        data = current.model_dump()
        data.update(self._normalize_changes(changes))

        now = utc_now()
        data["last_update"] = now
        new_status = IssueStatus(data["status"])
        if new_status == IssueStatus.OPEN and "status" in changes:
            data["last_failure"] = now
        if current.status == IssueStatus.OPEN and new_status == IssueStatus.CLOSED:
            git_info = git_info or GitInfo()
            data["fixed_by"] = git_info.author or UNKNOWN
            data["fix_commit"] = git_info.commit or UNKNOWN
            data["fix_message"] = git_info.message or ""

        if test_file_path and not data.get("test_file_path"):
            data["test_file_path"] = test_file_path
        if test_name and not data.get("test_name"):
            data["test_name"] = test_name

        self._database.test_identifiers[identity] = IssueMapping.model_validate(data)
        self._dirty = True
        return True

    @staticmethod
    def _normalize_changes(changes: dict[str, Any]) -> dict[str, Any]:
        """Translate JSON aliases in a change set to field names."""
        aliases = {
            info.alias: name
            for name, info in IssueMapping.model_fields.items()
            if info.alias
        }
        return {aliases.get(key, key): value for key, value in changes.items()}

    def remove(self, identity: str) -> bool:
        """Delete the mapping for a test identity.

        Returns:
            True if a mapping was removed
        """
        if self._database.test_identifiers.pop(identity, None) is None:
            return False
        self._dirty = True
        return True

    def all_entries(self) -> list[tuple[str, IssueMapping]]:
        """Get a snapshot of every stored mapping."""
        return [
            (identity, mapping.model_copy())
            for identity, mapping in self._database.test_identifiers.items()
        ]

    def save(self) -> bool:
        """Persist the database if it has unsaved changes.

        Returns:
            True if the database was written
        """
        if not self._dirty:
            return False
        try:
            self._atomic_write(self._database.to_json())
        except StoreError as e:
            logger.warning(str(e))
            return False
        self._dirty = False
        logger.debug(f"Saved {len(self)} mapping(s) to {self._path}")
        return True

    def _atomic_write(self, content: str) -> None:
        """Write content via a temp file and rename.

        Raises:
            StoreError: If any step fails (the temp file is removed)
        """
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(content)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self._path)
        except OSError as e:
            if tmp_path.exists():
                try:
                    tmp_path.unlink()
                except OSError:
                    pass
            raise StoreError(f"Failed to write {self._path}: {e}", self._path) from e

