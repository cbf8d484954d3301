"""Exception hierarchy for tfstate-migrator.

Every error raised by this package derives from :class:`MigratorError` so the
CLI can report failures uniformly. Component errors propagate to the caller;
the only place errors are combined is the history finalizer of
:class:`~tfstate_migrator.runner.HistoryRunner`.
"""

from collections.abc import Sequence


class MigratorError(Exception):
    """Base class for all tfstate-migrator errors."""


class ConfigError(MigratorError):
    """The process configuration file is missing required data or malformed."""


class MigrationFileError(MigratorError):
    """A migration file could not be read or validated."""


class CancelledError(MigratorError):
    """The run context was cancelled before or during a terraform call."""


class TerraformCommandError(MigratorError):
    """A terraform command exited with a non-zero status.

    Attributes:
        args: Command line arguments passed to terraform.
        returncode: Exit status of the process.
        stderr: Captured standard error.
    """

    def __init__(self, args: Sequence[str], returncode: int, stderr: str) -> None:
        self.command = list(args)
        self.returncode = returncode
        self.stderr = stderr.strip()
        super().__init__(
            f"terraform {' '.join(self.command)} failed with exit status {returncode}: "
            f"{self.stderr}"
        )


class TerraformExecError(MigratorError):
    """terraform could not be started, or its working directory could not be prepared."""


class ExpansionError(MigratorError):
    """A wildcard move could not be expanded into concrete moves."""


class PatternCompileError(ExpansionError):
    """A wildcard source address did not yield a valid regular expression.

    Attributes:
        pattern: The wildcard address as written in the migration file.
        raw: The derived regular expression text.
        cause: The underlying ``re.error``.
    """

    def __init__(self, pattern: str, raw: str, cause: Exception) -> None:
        self.pattern = pattern
        self.raw = raw
        self.cause = cause
        super().__init__(f"could not make pattern out of {pattern} ({raw}) due to {cause}")


class MoveApplyError(MigratorError):
    """Terraform rejected a state move (missing source, existing destination...)."""

    def __init__(self, source: str, destination: str, cause: Exception) -> None:
        self.source = source
        self.destination = destination
        self.cause = cause
        super().__init__(f"failed to move {source} to {destination}: {cause}")


class PlanHasChangesError(MigratorError):
    """The migrated state still has a diff against the configuration."""


class AlreadyAppliedError(MigratorError):
    """A migration file recorded in history was requested again."""

    def __init__(self, filename: str) -> None:
        self.filename = filename
        super().__init__(f"a migration has already been applied: {filename}")


class StorageError(MigratorError):
    """The history storage backend could not be read or written."""


class HistoryPersistError(MigratorError):
    """Apply succeeded but the updated history could not be saved.

    The state store has been mutated while the history file does not record
    it, so history may be inconsistent with the state.
    """

    def __init__(self, cause: Exception) -> None:
        self.cause = cause
        super().__init__(
            f"apply succeeded, but failed to save history (history may be inconsistent): {cause}"
        )


class CompositeRunError(MigratorError):
    """Apply failed and saving the partially updated history failed too."""

    def __init__(self, apply_error: BaseException, persist_error: Exception) -> None:
        self.apply_error = apply_error
        self.persist_error = persist_error
        super().__init__(
            f"failed to save history: {persist_error}, failed to apply: {apply_error}"
        )
