"""User preferences management - stored as JSON file."""

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Optional

from hunttrack.config.paths import get_data_dir


PREFS_FILENAME = "preferences.json"


@dataclass
class Preferences:
    """User preferences with defaults."""
    player_name: Optional[str] = None  # Only this player's globals count
    markup_enabled: bool = True
    default_markup_percent: float = 100.0  # 100 = TT value
    markup_fallback: str = "tt"  # tt | default | zero
    markup_sync_url: Optional[str] = None
    auto_sync_markup: bool = False


def get_prefs_path() -> Path:
    """Get the path to the preferences file."""
    return get_data_dir() / PREFS_FILENAME


def load_preferences(path: Optional[Path] = None) -> Preferences:
    """Load preferences from file, returning defaults if not found."""
    prefs_path = path or get_prefs_path()

    if prefs_path.exists():
        try:
            with open(prefs_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            known = {f.name for f in fields(Preferences)}
            prefs = Preferences(**{k: v for k, v in data.items() if k in known})
            prefs.default_markup_percent = float(prefs.default_markup_percent)
            return prefs
        except (json.JSONDecodeError, OSError, TypeError, ValueError):
            pass

    return Preferences()


def save_preferences(prefs: Preferences, path: Optional[Path] = None) -> bool:
    """Save preferences to file."""
    prefs_path = path or get_prefs_path()

    try:
        prefs_path.parent.mkdir(parents=True, exist_ok=True)
        with open(prefs_path, "w", encoding="utf-8") as f:
            json.dump(asdict(prefs), f, indent=2, ensure_ascii=False)
        return True
    except OSError:
        return False


def update_preference(key: str, value: Any, path: Optional[Path] = None) -> bool:
    """Update a single preference and save."""
    prefs = load_preferences(path)

    if hasattr(prefs, key):
        setattr(prefs, key, value)
        return save_preferences(prefs, path)

    return False


def get_preference(key: str, default: Any = None, path: Optional[Path] = None) -> Any:
    """Get a single preference value."""
    prefs = load_preferences(path)
    return getattr(prefs, key, default)
