"""File path resolution using platformdirs.

When REPLYAGENT_HOME is set, data lives there. Otherwise a source checkout
keeps the database at the project root, and an installed package uses the
platform user data directory:
  macOS: ~/Library/Application Support/replyagent/
  Linux: ~/.local/share/replyagent/
"""

import os
from pathlib import Path

import platformdirs

APP_NAME = "replyagent"

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


def _is_source_checkout() -> bool:
    return (_PROJECT_ROOT / "pyproject.toml").exists()


def get_data_dir() -> Path:
    """Return the directory for persistent data (DB)."""
    home = os.environ.get("REPLYAGENT_HOME", "").strip()
    if home:
        return Path(home).expanduser()
    if _is_source_checkout():
        return _PROJECT_ROOT
    return Path(platformdirs.user_data_dir(APP_NAME, appauthor=False))


def get_default_db_path() -> Path:
    """Return the default SQLite database file path."""
    return get_data_dir() / "replyagent.db"


def ensure_dirs_exist() -> None:
    """Create the data directory if it doesn't exist."""
    get_data_dir().mkdir(parents=True, exist_ok=True)
