"""History controller: which migration files have been applied.

The controller owns an in-memory copy of the history file. Records are added
as migrations succeed and written back in one ``save`` call by the runner.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from tfstate_migrator.errors import ConfigError, StorageError
from tfstate_migrator.history.models import HISTORY_FILE_VERSION, HistoryFile, Record
from tfstate_migrator.history.storage import LocalStorage
from tfstate_migrator.migrations.models import is_migration_file
from tfstate_migrator.tfexec import Context

logger = logging.getLogger(__name__)


class Storage(Protocol):
    """Backend holding the serialized history file."""

    def read(self, ctx: Context) -> bytes: ...

    def write(self, ctx: Context, data: bytes) -> None: ...


def parse_history(data: bytes) -> HistoryFile:
    """Parse a serialized history file; empty input is an empty history.

    Raises:
        StorageError: If the data is not a valid history file.
    """
    if not data.strip():
        return HistoryFile()

    try:
        history = HistoryFile.model_validate_json(data)
    except ValidationError as e:
        raise StorageError(f"failed to parse history file: {e}") from e

    if history.version != HISTORY_FILE_VERSION:
        raise StorageError(f"unknown history file version: {history.version}")
    return history


class HistoryController:
    """Tracks applied migrations against the files in the migration directory.

    Attributes:
        migration_dir: Directory containing migration files.
        storage: Backend the history is persisted to.

    Example:
        ```python
        hc = HistoryController.load(ctx, Path("migrations"), LocalStorage(path))
        for filename in hc.unapplied_migrations():
            ...
            hc.add_record(filename, "state", "rename_app")
        hc.save(ctx)
        ```
    """

    def __init__(
        self,
        migration_dir: Path,
        storage: Storage,
        history: HistoryFile | None = None,
    ) -> None:
        self.migration_dir = migration_dir
        self.storage = storage
        self._history = history or HistoryFile()

    @classmethod
    def load(cls, ctx: Context, migration_dir: Path, storage: Storage) -> "HistoryController":
        """Create a controller from the history currently in storage."""
        history = parse_history(storage.read(ctx))
        logger.debug(f"[history] loaded {len(history.records)} record(s)")
        return cls(migration_dir, storage, history)

    @classmethod
    def from_path(cls, ctx: Context, migration_dir: Path, path: Path) -> "HistoryController":
        """Create a controller backed by a local history file."""
        return cls.load(ctx, migration_dir, LocalStorage(path))

    @property
    def records(self) -> dict[str, Record]:
        """Applied migrations keyed by filename."""
        return dict(self._history.records)

    def migrations(self) -> list[str]:
        """List migration filenames in the migration directory, sorted.

        Raises:
            ConfigError: If the migration directory cannot be read.
        """
        try:
            entries = list(self.migration_dir.iterdir())
        except OSError as e:
            raise ConfigError(f"failed to read migration dir {self.migration_dir}: {e}") from e

        return sorted(entry.name for entry in entries if is_migration_file(entry))

    def already_applied(self, filename: str) -> bool:
        """Whether a migration file has been recorded as applied."""
        return filename in self._history.records

    def applied_migrations(self) -> list[str]:
        """Recorded migration filenames that still exist in the directory."""
        return [f for f in self.migrations() if self.already_applied(f)]

    def unapplied_migrations(self) -> list[str]:
        """Migration filenames not recorded in history, in filename order."""
        return [f for f in self.migrations() if not self.already_applied(f)]

    def add_record(
        self,
        filename: str,
        migration_type: str,
        name: str,
        applied_at: datetime | None = None,
    ) -> None:
        """Record a migration file as applied.

        Existing records are never overwritten.
        """
        if self.already_applied(filename):
            logger.warning(f"[history] record for {filename} already exists, keeping it")
            return

        self._history.records[filename] = Record(
            type=migration_type,
            name=name,
            applied_at=applied_at or datetime.now(timezone.utc),
        )

    def history_length(self) -> int:
        """Number of records in history."""
        return len(self._history.records)

    def save(self, ctx: Context) -> None:
        """Persist the history to storage.

        Raises:
            StorageError: If the backend fails to write.
        """
        data = self._history.model_dump_json(indent=2).encode()
        self.storage.write(ctx, data)
