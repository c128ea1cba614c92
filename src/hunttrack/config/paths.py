"""Data and resource path resolution."""

import os
from pathlib import Path

DATA_DIR_ENV = "HUNTTRACK_DATA_DIR"


def get_app_dir() -> Path:
    """
    Get the application directory.

    Source layout: this file is at src/hunttrack/config/paths.py, so the
    project root is 4 levels up.
    """
    return Path(__file__).resolve().parents[3]


def get_data_dir(portable: bool = False) -> Path:
    """
    Get the data directory for the database, preferences and logs.

    Args:
        portable: If True, use ./data in the current directory

    Returns:
        Path to data directory (created if needed)
    """
    override = os.environ.get(DATA_DIR_ENV, "")
    if override:
        data_dir = Path(override)
    elif portable:
        data_dir = Path.cwd() / "data"
    else:
        data_dir = Path.home() / ".hunttrack"

    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def get_equipment_dir() -> Path:
    """
    Get the bundled equipment data directory.

    Returns:
        Path to data/equipment beside the project root
    """
    return get_app_dir() / "data" / "equipment"
