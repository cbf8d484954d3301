"""Version information for tfstate-migrator."""

from pathlib import Path

_FALLBACK_VERSION = "0.1.0"


def _get_version() -> str:
    """Read the version from a VERSION file, package first, then repo root."""
    here = Path(__file__).parent
    for candidate in (here / "VERSION", here.parent.parent / "VERSION"):
        if candidate.exists():
            return candidate.read_text().strip()

    return _FALLBACK_VERSION


__version__ = _get_version()
