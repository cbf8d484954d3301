"""Migration history tracking.

Records which migration files have been applied so that each file runs at
most once.
"""

from tfstate_migrator.history.controller import HistoryController
from tfstate_migrator.history.models import HistoryFile, Record
from tfstate_migrator.history.storage import LocalStorage

__all__ = [
    "HistoryController",
    "HistoryFile",
    "LocalStorage",
    "Record",
]
