"""tfstate-migrator.

Apply Terraform state migrations (mv, wildcard mv, rm, import) declared in
migration files, and keep a history of applied files so each runs only once.
"""

from tfstate_migrator.__version__ import __version__
from tfstate_migrator.runner import FileRunner, HistoryRunner

__all__ = ["FileRunner", "HistoryRunner", "__version__"]
