"""Shared pytest fixtures for tfstate-migrator tests.

This module provides run contexts, the fake terraform from tests.fakes,
and helpers for temporary migration directories and configs.
"""

import json
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from tests.fakes import FakeTerraformCLI
from tfstate_migrator.config import (
    HistoryConfig,
    LocalStorageConfig,
    StorageConfig,
    TfmigrateConfig,
)
from tfstate_migrator.tfexec import Context

# =============================================================================
# Fake Terraform Fixtures
# =============================================================================


@pytest.fixture
def ctx() -> Context:
    """Create a fresh run context."""
    return Context()


@pytest.fixture
def fake_tf() -> FakeTerraformCLI:
    """Create a fake terraform with an empty state."""
    return FakeTerraformCLI()


# =============================================================================
# Migration Directory Fixtures
# =============================================================================


@pytest.fixture
def migrations_dir(tmp_path: Path) -> Path:
    """Create a temporary migrations directory."""
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    return migrations


@pytest.fixture
def history_path(tmp_path: Path) -> Path:
    """Get the path for a temporary history file."""
    return tmp_path / "tmp" / "history.json"


@pytest.fixture
def config(migrations_dir: Path, history_path: Path) -> TfmigrateConfig:
    """Create a configuration with history enabled in temporary directories."""
    return TfmigrateConfig(
        migration_dir=str(migrations_dir),
        history=HistoryConfig(
            storage=StorageConfig(local=LocalStorageConfig(path=str(history_path)))
        ),
    )


@pytest.fixture
def write_migration(migrations_dir: Path) -> Callable[..., Path]:
    """Return a helper writing a migration file into the migrations directory."""

    def _write(filename: str, name: str, actions: Sequence[str], force: bool = False) -> Path:
        lines = [
            "migration:",
            "  type: state",
            f"  name: {name}",
            f"  force: {'true' if force else 'false'}",
            "  actions:",
        ]
        lines += [f"    - {json.dumps(action)}" for action in actions]
        path = migrations_dir / filename
        path.write_text("\n".join(lines) + "\n")
        return path

    return _write
