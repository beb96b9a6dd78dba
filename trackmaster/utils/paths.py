"""File path resolution using platformdirs.

Paths use platform-appropriate directories:
  macOS: ~/Library/Application Support/TrackMaster/
  Linux: ~/.local/share/trackmaster/
  Windows: %LOCALAPPDATA%/TrackMaster/

TRACKMASTER_HOME overrides the data directory (useful for tests and
portable installs).
"""

import os
from pathlib import Path

import platformdirs

APP_NAME = "trackmaster"
APP_AUTHOR = "TrackMaster"


def get_data_dir() -> Path:
    """Return the directory for persistent data (DB)."""
    override = os.environ.get("TRACKMASTER_HOME", "").strip()
    if override:
        return Path(override).expanduser()
    return Path(platformdirs.user_data_dir(APP_NAME, appauthor=APP_AUTHOR))


def get_log_dir() -> Path:
    """Return the directory for application logs."""
    override = os.environ.get("TRACKMASTER_HOME", "").strip()
    if override:
        return Path(override).expanduser() / "logs"
    return Path(platformdirs.user_log_dir(APP_NAME, appauthor=APP_AUTHOR))


def get_default_db_path() -> Path:
    """Return the default SQLite database file path, creating its directory."""
    data_dir = get_data_dir()
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir / "trackmaster.db"
