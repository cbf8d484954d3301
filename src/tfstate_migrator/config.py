"""Process configuration loaded from ``.tfmigrate.yaml``.

Example:
    ```yaml
    tfmigrate:
      migration_dir: ./migrations
      exec_path: terraform
      history:
        storage:
          local:
            path: tmp/history.json
    ```

Environment variables:
    TFMIGRATE_CONFIG: Path to the configuration file.
    TFMIGRATE_EXEC_PATH: Overrides ``exec_path``.
"""

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from tfstate_migrator.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = ".tfmigrate.yaml"


class LocalStorageConfig(BaseModel):
    """Local filesystem storage for the history file."""

    path: str = Field(..., description="Path to the history file")


class StorageConfig(BaseModel):
    """History storage backend selection."""

    local: LocalStorageConfig


class HistoryConfig(BaseModel):
    """History tracking settings."""

    storage: StorageConfig


class TfmigrateConfig(BaseModel):
    """Global settings shared by all migrations.

    Attributes:
        migration_dir: Directory containing migration files.
        exec_path: terraform executable name or path.
        history: History settings; without them each run needs a filename
            and nothing is recorded.
    """

    migration_dir: str = Field(default=".", description="Directory of migration files")
    exec_path: str = Field(default="terraform", description="terraform executable")
    history: HistoryConfig | None = Field(default=None, description="History settings")

    @property
    def history_path(self) -> Path | None:
        """Path of the local history file, if history is enabled."""
        if self.history is None:
            return None
        return Path(self.history.storage.local.path)


class ConfigFile(BaseModel):
    """Top-level structure of the configuration file."""

    tfmigrate: TfmigrateConfig = Field(default_factory=TfmigrateConfig)


def load_config(path: Path | None = None) -> TfmigrateConfig:
    """Load the configuration file and apply environment overrides.

    Args:
        path: Configuration file. Defaults to ``$TFMIGRATE_CONFIG`` or
            ``./.tfmigrate.yaml``. A missing default file yields defaults;
            a missing explicit file is an error.

    Raises:
        ConfigError: If the file is missing (when given explicitly),
            unreadable or invalid.
    """
    explicit = path is not None or "TFMIGRATE_CONFIG" in os.environ
    config_path = path or Path(os.environ.get("TFMIGRATE_CONFIG", DEFAULT_CONFIG_FILE))

    if config_path.exists():
        try:
            data = yaml.safe_load(config_path.read_text()) or {}
            config = ConfigFile.model_validate(data).tfmigrate
        except (OSError, yaml.YAMLError, ValidationError) as e:
            raise ConfigError(f"failed to load config file {config_path}: {e}") from e
        logger.debug(f"[config] loaded {config_path}")
    elif explicit:
        raise ConfigError(f"config file not found: {config_path}")
    else:
        config = TfmigrateConfig()

    exec_path = os.environ.get("TFMIGRATE_EXEC_PATH")
    if exec_path:
        config.exec_path = exec_path

    return config
