"""
SkySync Data Paths

Manages the data directory holding config.yaml and log files.
"""

import os
from pathlib import Path

DEFAULT_DATA_PATH = Path.home() / ".skysync"


def get_data_path() -> Path:
    """Get the SkySync data directory path.

    Uses SKYSYNC_DATA_PATH when set, ~/.skysync otherwise.
    """
    data_path = os.environ.get("SKYSYNC_DATA_PATH")
    if data_path:
        return Path(data_path).expanduser()
    return DEFAULT_DATA_PATH


def ensure_data_dir() -> Path:
    """Ensure the data directory exists and return it."""
    data_path = get_data_path()
    data_path.mkdir(parents=True, exist_ok=True)
    return data_path
