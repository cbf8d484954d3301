"""Command-line interface for tfstate-migrator."""
