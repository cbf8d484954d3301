"""Data models for migration files.

This module defines Pydantic models for migration definitions and the state
actions they contain, plus the loader that reads them from YAML.
"""

import shlex
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from tfstate_migrator.errors import MigrationFileError

MIGRATION_FILE_SUFFIXES = (".yaml", ".yml")


class ActionType(str, Enum):
    """Supported state action types."""

    MV = "mv"
    XMV = "xmv"
    RM = "rm"
    IMPORT = "import"


class ActionSpec(BaseModel):
    """A single state action as written in a migration file.

    Actions can be given as a mapping or as a shell-style command string:

        - "mv aws_instance.a aws_instance.b"
        - "xmv module.app[*].aws_instance.web module.web[$1].aws_instance.this"
        - "rm aws_instance.old aws_instance.older"
        - "import aws_instance.c i-0123456789"

    Attributes:
        type: The action type (mv, xmv, rm, import).
        from_address: Source address for mv/xmv (xmv may contain wildcards).
        to_address: Destination address or template for mv/xmv.
        addresses: Addresses to remove for rm.
        address: Address to import into.
        id: Provider-specific identifier of the object to import.
    """

    type: ActionType = Field(..., description="Action type")
    from_address: str | None = Field(default=None, alias="from", description="Source address")
    to_address: str | None = Field(default=None, alias="to", description="Destination address")
    addresses: list[str] = Field(default_factory=list, description="Addresses to remove")
    address: str | None = Field(default=None, description="Address to import into")
    id: str | None = Field(default=None, description="Identifier of the object to import")

    model_config = {"populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def _parse_command(cls, data: Any) -> Any:
        if not isinstance(data, str):
            return data

        try:
            argv = shlex.split(data)
        except ValueError as e:
            raise ValueError(f"failed to parse action {data!r}: {e}") from e
        if not argv:
            raise ValueError("empty action")

        kind, args = argv[0], argv[1:]
        if kind in (ActionType.MV.value, ActionType.XMV.value):
            if len(args) != 2:
                raise ValueError(f"{kind} action requires 2 arguments: {data!r}")
            return {"type": kind, "from": args[0], "to": args[1]}
        if kind == ActionType.RM.value:
            return {"type": kind, "addresses": args}
        if kind == ActionType.IMPORT.value:
            if len(args) != 2:
                raise ValueError(f"import action requires 2 arguments: {data!r}")
            return {"type": kind, "address": args[0], "id": args[1]}
        raise ValueError(f"unknown action type: {kind}")

    @model_validator(mode="after")
    def _check_required(self) -> "ActionSpec":
        if self.type in (ActionType.MV, ActionType.XMV):
            if not self.from_address or not self.to_address:
                raise ValueError(f"{self.type.value} action requires 'from' and 'to'")
        elif self.type == ActionType.RM:
            if not self.addresses:
                raise ValueError("rm action requires at least one address")
        elif self.type == ActionType.IMPORT:
            if not self.address or not self.id:
                raise ValueError("import action requires 'address' and 'id'")
        return self


class MigrationConfig(BaseModel):
    """A migration definition, the body of a migration file.

    Attributes:
        type: Migration type; only "state" is supported.
        name: Human-readable migration name, recorded in history.
        dir: Terraform working directory, relative to the current directory.
        workspace: Terraform workspace to operate on.
        force: Apply even if the plan still shows changes.
        actions: State actions to perform, in order.
    """

    type: str = Field(default="state", description="Migration type")
    name: str = Field(..., description="Migration name")
    dir: str = Field(default=".", description="Terraform working directory")
    workspace: str = Field(default="default", description="Terraform workspace")
    force: bool = Field(default=False, description="Ignore plan changes")
    actions: list[ActionSpec] = Field(..., min_length=1, description="State actions")

    @field_validator("type")
    @classmethod
    def _check_type(cls, value: str) -> str:
        if value != "state":
            raise ValueError(f"unknown migration type: {value}")
        return value


class MigrationFile(BaseModel):
    """Top-level structure of a migration file."""

    migration: MigrationConfig


def is_migration_file(path: Path) -> bool:
    """Whether a directory entry looks like a migration file."""
    return (
        path.is_file()
        and not path.name.startswith(".")
        and path.suffix in MIGRATION_FILE_SUFFIXES
    )


def load_migration_file(path: Path) -> MigrationConfig:
    """Read and validate a migration file.

    Args:
        path: Path to a YAML migration file.

    Returns:
        The validated migration definition.

    Raises:
        MigrationFileError: If the file cannot be read, parsed or validated.
    """
    try:
        content = path.read_text()
    except OSError as e:
        raise MigrationFileError(f"failed to read migration file {path}: {e}") from e

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise MigrationFileError(f"failed to parse migration file {path}: {e}") from e

    if not isinstance(data, dict):
        raise MigrationFileError(f"migration file {path} is empty or not a mapping")

    try:
        return MigrationFile.model_validate(data).migration
    except ValidationError as e:
        raise MigrationFileError(f"invalid migration file {path}: {e}") from e
