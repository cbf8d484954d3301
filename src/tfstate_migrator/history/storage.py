"""Storage backends for the history file.

Storage Location: configured by ``history.storage.local.path`` in
``.tfmigrate.yaml``, relative to the current directory.
"""

import logging
from pathlib import Path

from tfstate_migrator.errors import StorageError
from tfstate_migrator.tfexec import Context

logger = logging.getLogger(__name__)


class LocalStorage:
    """Reads and writes the history file on the local filesystem.

    Attributes:
        path: Path to the history JSON file.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def read(self, ctx: Context) -> bytes:
        """Return the history file contents, or empty bytes if it doesn't exist."""
        ctx.check()
        if not self.path.exists():
            logger.debug(f"[storage] history file {self.path} not found, starting empty")
            return b""

        try:
            return self.path.read_bytes()
        except OSError as e:
            raise StorageError(f"failed to read history file {self.path}: {e}") from e

    def write(self, ctx: Context, data: bytes) -> None:
        """Write the history file, creating parent directories as needed."""
        ctx.check()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_bytes(data)
        except OSError as e:
            raise StorageError(f"failed to write history file {self.path}: {e}") from e
