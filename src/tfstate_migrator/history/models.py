"""Data models for the migration history file."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field

HISTORY_FILE_VERSION = 1


class Record(BaseModel):
    """Record of an applied migration file.

    Records are keyed by filename in :class:`HistoryFile` and never change
    once written.

    Attributes:
        type: Migration type (e.g. "state").
        name: Migration name from the migration file.
        applied_at: When the migration was applied.
    """

    type: str = Field(..., description="Migration type")
    name: str = Field(..., description="Migration name")
    applied_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When migration was applied",
    )

    model_config = {"frozen": True}


class HistoryFile(BaseModel):
    """Serialized form of the migration history.

    Example:
        ```json
        {
          "version": 1,
          "records": {
            "20240101000000_rename_app.yaml": {
              "type": "state",
              "name": "rename_app",
              "applied_at": "2024-01-01T00:00:00Z"
            }
          }
        }
        ```
    """

    version: int = Field(default=HISTORY_FILE_VERSION, description="File format version")
    records: dict[str, Record] = Field(
        default_factory=dict, description="Applied migrations keyed by filename"
    )
