"""Command-line interface for tfstate-migrator."""

import logging
import os
import signal
import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

import click

from tfstate_migrator.__version__ import __version__
from tfstate_migrator.config import TfmigrateConfig, load_config
from tfstate_migrator.errors import ConfigError, MigratorError
from tfstate_migrator.history import HistoryController
from tfstate_migrator.runner import FileRunner, HistoryRunner
from tfstate_migrator.tfexec import Context

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@contextmanager
def _run_context() -> Iterator[Context]:
    """Yield a run context that Ctrl-C cancels instead of killing the process."""
    ctx = Context()
    previous = signal.signal(signal.SIGINT, lambda signum, frame: ctx.cancel())
    try:
        yield ctx
    finally:
        signal.signal(signal.SIGINT, previous)


def _fail(message: str) -> None:
    click.echo(f"❌ {message}", err=True)
    sys.exit(1)


def _execute(config: TfmigrateConfig, filename: str | None, action: Callable) -> None:
    """Run plan or apply through the history runner, or a bare file runner."""
    with _run_context() as ctx:
        try:
            if config.history is not None:
                runner = HistoryRunner.from_config(ctx, filename, config)
                runner.set_progress_callback(click.echo)
                action(runner, ctx)
                return

            if not filename:
                raise ConfigError("a migration file is required when history is not configured")
            action(FileRunner(Path(filename), config), ctx)
        except MigratorError as e:
            _fail(str(e))


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to the configuration file (default: .tfmigrate.yaml)",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=lambda: os.environ.get("TFMIGRATE_LOG", "WARNING").upper(),
    help="Log level (env: TFMIGRATE_LOG)",
)
@click.pass_context
def main(click_ctx: click.Context, config_path: Path | None, log_level: str) -> None:
    """tfmigrate - Terraform state migration tool.

    Applies state migrations (mv, xmv, rm, import) declared in migration
    files. When history is configured, applied files are recorded and never
    applied twice.
    """
    logging.basicConfig(level=log_level.upper(), format="%(asctime)s [%(levelname)s] %(message)s")

    try:
        click_ctx.obj = load_config(config_path)
    except ConfigError as e:
        _fail(str(e))


@main.command()
@click.argument("filename", required=False)
@click.pass_obj
def plan(config: TfmigrateConfig, filename: str | None) -> None:
    """Plan migrations without changing the remote state.

    With FILENAME, plans that migration; otherwise plans every unapplied
    migration in the migration directory.
    """
    _execute(config, filename, lambda runner, ctx: runner.plan(ctx))
    click.echo("Plan succeeded.")


@main.command()
@click.argument("filename", required=False)
@click.pass_obj
def apply(config: TfmigrateConfig, filename: str | None) -> None:
    """Apply migrations and record them in history.

    With FILENAME, applies that migration; otherwise applies every unapplied
    migration in the migration directory, stopping at the first failure.
    """
    _execute(config, filename, lambda runner, ctx: runner.apply(ctx))
    click.echo("Apply succeeded.")


@main.command("list")
@click.option(
    "--status",
    type=click.Choice(["all", "applied", "unapplied"]),
    default="all",
    show_default=True,
    help="Filter migrations by status",
)
@click.pass_obj
def list_migrations(config: TfmigrateConfig, status: str) -> None:
    """List migration files."""
    with _run_context() as ctx:
        try:
            history_path = config.history_path
            if history_path is None:
                raise ConfigError("history is not configured")
            hc = HistoryController.from_path(ctx, Path(config.migration_dir), history_path)

            if status == "applied":
                filenames = hc.applied_migrations()
            elif status == "unapplied":
                filenames = hc.unapplied_migrations()
            else:
                filenames = hc.migrations()
        except MigratorError as e:
            _fail(str(e))
            return

    for filename in filenames:
        click.echo(filename)


if __name__ == "__main__":
    main()
