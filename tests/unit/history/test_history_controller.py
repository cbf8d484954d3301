"""Tests for history tracking and storage."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from tfstate_migrator.errors import CancelledError, ConfigError, StorageError
from tfstate_migrator.history import HistoryController, HistoryFile, LocalStorage, Record
from tfstate_migrator.history.controller import parse_history
from tfstate_migrator.tfexec import Context


def _write_history(path: Path, records: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"version": 1, "records": records}))


@pytest.mark.unit
class TestLocalStorage:
    """Tests for LocalStorage."""

    def test_read_missing_file(self, ctx: Context, history_path: Path):
        """Should read a missing file as empty."""
        assert LocalStorage(history_path).read(ctx) == b""

    def test_write_creates_parents(self, ctx: Context, history_path: Path):
        """Should create parent directories when writing."""
        storage = LocalStorage(history_path)

        storage.write(ctx, b"{}")

        assert history_path.read_bytes() == b"{}"

    def test_write_failure(self, ctx: Context, tmp_path: Path):
        """Should raise StorageError when the file cannot be written."""
        blocker = tmp_path / "blocker"
        blocker.write_text("")

        with pytest.raises(StorageError):
            LocalStorage(blocker / "history.json").write(ctx, b"{}")

    def test_respects_cancellation(self, history_path: Path):
        """Should not touch storage once the context is cancelled."""
        ctx = Context()
        ctx.cancel()

        with pytest.raises(CancelledError):
            LocalStorage(history_path).write(ctx, b"{}")
        assert not history_path.exists()


@pytest.mark.unit
class TestParseHistory:
    """Tests for history parsing."""

    def test_empty(self):
        """Should parse empty data as an empty history."""
        assert parse_history(b"") == HistoryFile()

    def test_records(self):
        """Should parse records keyed by filename."""
        history = parse_history(
            json.dumps(
                {
                    "version": 1,
                    "records": {
                        "a.yaml": {
                            "type": "state",
                            "name": "a",
                            "applied_at": "2024-01-01T00:00:00Z",
                        }
                    },
                }
            ).encode()
        )

        assert history.records["a.yaml"].name == "a"
        assert history.records["a.yaml"].applied_at == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_invalid_json(self):
        """Should raise StorageError for corrupted data."""
        with pytest.raises(StorageError):
            parse_history(b"{not json")

    def test_unknown_version(self):
        """Should reject unknown file versions."""
        with pytest.raises(StorageError, match="version"):
            parse_history(b'{"version": 2, "records": {}}')


@pytest.mark.unit
class TestHistoryController:
    """Tests for HistoryController."""

    def test_unapplied_migrations(self, ctx: Context, migrations_dir: Path, history_path: Path):
        """Should return files not in history, in filename order."""
        for name in ["003_c.yaml", "001_a.yaml", "002_b.yml", "notes.txt"]:
            (migrations_dir / name).write_text("")
        _write_history(
            history_path,
            {"001_a.yaml": {"type": "state", "name": "a", "applied_at": "2024-01-01T00:00:00Z"}},
        )

        hc = HistoryController.from_path(ctx, migrations_dir, history_path)

        assert hc.migrations() == ["001_a.yaml", "002_b.yml", "003_c.yaml"]
        assert hc.unapplied_migrations() == ["002_b.yml", "003_c.yaml"]
        assert hc.applied_migrations() == ["001_a.yaml"]
        assert hc.already_applied("001_a.yaml")
        assert not hc.already_applied("002_b.yml")
        assert hc.history_length() == 1

    def test_missing_migration_dir(self, ctx: Context, tmp_path: Path, history_path: Path):
        """Should raise ConfigError when the migration dir does not exist."""
        hc = HistoryController.from_path(ctx, tmp_path / "missing", history_path)

        with pytest.raises(ConfigError):
            hc.migrations()

    def test_add_record_and_save(self, ctx: Context, migrations_dir: Path, history_path: Path):
        """Should persist added records."""
        hc = HistoryController.from_path(ctx, migrations_dir, history_path)
        applied_at = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

        hc.add_record("001_a.yaml", "state", "a", applied_at=applied_at)
        hc.save(ctx)

        reloaded = HistoryController.from_path(ctx, migrations_dir, history_path)
        assert reloaded.records == {
            "001_a.yaml": Record(type="state", name="a", applied_at=applied_at)
        }

    def test_add_record_never_overwrites(self, ctx: Context, migrations_dir: Path, history_path: Path):
        """Should keep the first record for a filename."""
        hc = HistoryController.from_path(ctx, migrations_dir, history_path)
        first = datetime(2024, 1, 1, tzinfo=timezone.utc)

        hc.add_record("001_a.yaml", "state", "a", applied_at=first)
        hc.add_record("001_a.yaml", "state", "renamed")

        assert hc.history_length() == 1
        assert hc.records["001_a.yaml"].name == "a"

    def test_records_is_a_copy(self, ctx: Context, migrations_dir: Path, history_path: Path):
        """Should not let callers mutate history through records."""
        hc = HistoryController.from_path(ctx, migrations_dir, history_path)

        hc.records["x.yaml"] = Record(type="state", name="x")

        assert hc.history_length() == 0
