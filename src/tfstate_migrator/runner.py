"""Migration runners.

This module provides the FileRunner, which plans or applies a single
migration file, and the HistoryRunner, which runs one or all unapplied
migration files and records successful applies in history so that no file
is applied twice.
"""

import logging
from collections.abc import Callable
from pathlib import Path

from tfstate_migrator.config import TfmigrateConfig
from tfstate_migrator.errors import (
    AlreadyAppliedError,
    CompositeRunError,
    ConfigError,
    HistoryPersistError,
)
from tfstate_migrator.history import HistoryController
from tfstate_migrator.migrations.migrator import StateMigrator
from tfstate_migrator.migrations.models import MigrationConfig, load_migration_file
from tfstate_migrator.tfexec import Context, TerraformCLI

logger = logging.getLogger(__name__)

TerraformFactory = Callable[[MigrationConfig], TerraformCLI]


def default_terraform_factory(exec_path: str) -> TerraformFactory:
    """Return a factory building a TerraformCLI for a migration's dir and workspace."""

    def _factory(mc: MigrationConfig) -> TerraformCLI:
        return TerraformCLI(Path(mc.dir), exec_path=exec_path, workspace=mc.workspace)

    return _factory


class FileRunner:
    """Plans or applies a single migration file without history.

    Attributes:
        path: Path to the migration file.
        migration_config: The parsed migration definition.
        migrator: Migrator running the definition's actions.
    """

    def __init__(
        self,
        path: Path,
        config: TfmigrateConfig,
        tf_factory: TerraformFactory | None = None,
    ) -> None:
        self.path = path
        self.migration_config = load_migration_file(path)
        factory = tf_factory or default_terraform_factory(config.exec_path)
        self.migrator = StateMigrator(self.migration_config, factory(self.migration_config))

    def plan(self, ctx: Context) -> None:
        """Plan the migration; the remote state is left untouched."""
        logger.info(f"[runner] plan {self.path}")
        self.migrator.plan(ctx)

    def apply(self, ctx: Context) -> None:
        """Apply the migration and push the migrated state."""
        logger.info(f"[runner] apply {self.path}")
        self.migrator.apply(ctx)


class HistoryRunner:
    """History-aware runner.

    With a filename, runs that single migration; without one, runs every
    migration file not yet recorded in history, in filename order, stopping
    at the first failure. Applied files are added to history, and history is
    saved once at the end of ``apply`` if anything was recorded.

    Example:
        ```python
        ctx = Context()
        hc = HistoryController.from_path(ctx, Path("migrations"), Path("history.json"))
        runner = HistoryRunner(None, config, hc)
        runner.plan(ctx)
        runner.apply(ctx)
        ```
    """

    def __init__(
        self,
        filename: str | None,
        config: TfmigrateConfig,
        history: HistoryController,
        tf_factory: TerraformFactory | None = None,
    ) -> None:
        self.filename = filename
        self.config = config
        self.history = history
        self.tf_factory = tf_factory
        self._on_progress: Callable[[str], None] | None = None

    @classmethod
    def from_config(
        cls,
        ctx: Context,
        filename: str | None,
        config: TfmigrateConfig,
        tf_factory: TerraformFactory | None = None,
    ) -> "HistoryRunner":
        """Create a runner whose history is loaded from the configured storage."""
        history_path = config.history_path
        if history_path is None:
            raise ConfigError("history is not configured")
        history = HistoryController.from_path(ctx, Path(config.migration_dir), history_path)
        return cls(filename, config, history, tf_factory)

    def set_progress_callback(self, callback: Callable[[str], None] | None) -> None:
        """Set a callback for progress updates.

        Args:
            callback: Function to call with progress messages.
        """
        self._on_progress = callback

    def _log(self, message: str) -> None:
        """Log a message and call progress callback if set."""
        logger.info(message)
        if self._on_progress:
            self._on_progress(message)

    def resolve_path(self, filename: str) -> Path:
        """Return the path of a migration file in the migration dir."""
        return Path(self.config.migration_dir) / filename

    def _file_runner(self, filename: str) -> FileRunner:
        if self.history.already_applied(filename):
            raise AlreadyAppliedError(filename)
        return FileRunner(self.resolve_path(filename), self.config, self.tf_factory)

    def plan(self, ctx: Context) -> None:
        """Plan the single migration, or all unapplied migrations."""
        if self.filename:
            self._plan_file(ctx, self.filename)
            return

        for filename in self._unapplied():
            self._plan_file(ctx, filename)

    def _plan_file(self, ctx: Context, filename: str) -> None:
        self._log(f"[runner] plan migration: {filename}")
        self._file_runner(filename).plan(ctx)

    def apply(self, ctx: Context) -> None:
        """Apply the single migration, or all unapplied migrations, and save history.

        Raises:
            AlreadyAppliedError: If the given file is already in history.
            HistoryPersistError: If every migration succeeded but history
                could not be saved.
            CompositeRunError: If a migration failed and the history of the
                migrations applied before it could not be saved either.
        """
        before_len = self.history.history_length()
        try:
            if self.filename:
                self._apply_file(ctx, self.filename)
            else:
                for filename in self._unapplied():
                    self._apply_file(ctx, filename)
        except BaseException as e:
            self._save_history(before_len, e)
            raise
        self._save_history(before_len, None)

    def _apply_file(self, ctx: Context, filename: str) -> None:
        self._log(f"[runner] apply migration: {filename}")
        fr = self._file_runner(filename)
        fr.apply(ctx)

        mc = fr.migration_config
        self._log(f"[runner] add a record to history: {filename}, type: {mc.type}, name: {mc.name}")
        self.history.add_record(filename, mc.type, mc.name)

    def _unapplied(self) -> list[str]:
        unapplied = self.history.unapplied_migrations()
        self._log(f"[runner] unapplied migration files: {unapplied}")
        if not unapplied:
            self._log("[runner] no unapplied migrations")
        return unapplied

    def _save_history(self, before_len: int, error: BaseException | None) -> None:
        """Persist history if this run recorded anything.

        A run that recorded nothing leaves the history file untouched. When
        saving fails, the error raised still carries the outcome of the run.
        """
        if self.history.history_length() == before_len:
            return

        # A cancelled run must still record the migrations it applied.
        try:
            self.history.save(Context())
        except Exception as serr:
            logger.error("[runner] failed to save history. The history may be inconsistent")
            if error is None:
                raise HistoryPersistError(serr) from serr
            raise CompositeRunError(error, serr) from serr

        self._log("[runner] history saved")
