"""Runtime settings."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from hunttrack.config.paths import get_data_dir, get_equipment_dir

DB_FILENAME = "hunttrack.db"

# Feed file the game-log reader appends classified events to
EVENTS_FILENAME = "events.jsonl"


def get_default_db_path() -> Path:
    """Database path inside the data directory."""
    return get_data_dir() / DB_FILENAME


def get_portable_db_path() -> Path:
    """
    Get the portable database path.

    Returns:
        Path to data/hunttrack.db in the current directory
    """
    return get_data_dir(portable=True) / DB_FILENAME


@dataclass
class Settings:
    """Application settings."""

    # Path to database file
    db_path: Path = field(default_factory=get_default_db_path)

    # JSON-lines event feed to tail
    events_path: Optional[Path] = None

    # Directory of equipment JSON files
    equipment_dir: Optional[Path] = None

    # Use portable mode (data in ./data)
    portable: bool = False

    # Poll interval for feed tailing (seconds)
    poll_interval: float = 0.5

    # Scheduler windows (seconds)
    save_debounce_seconds: float = 0.5
    stats_throttle_seconds: float = 0.5

    def __post_init__(self) -> None:
        """Apply portable mode if enabled."""
        if self.portable:
            self.db_path = get_portable_db_path()

        if self.events_path is None:
            self.events_path = get_data_dir(portable=self.portable) / EVENTS_FILENAME

        if self.equipment_dir is None:
            self.equipment_dir = get_equipment_dir()

    @classmethod
    def from_args(
        cls,
        db_path: Optional[str] = None,
        events_path: Optional[str] = None,
        equipment_dir: Optional[str] = None,
        portable: bool = False,
    ) -> "Settings":
        """
        Create settings from CLI arguments.

        Args:
            db_path: Override database path
            events_path: Override event feed path
            equipment_dir: Override equipment data directory
            portable: Use portable mode
        """
        settings = cls(
            events_path=Path(events_path) if events_path else None,
            equipment_dir=Path(equipment_dir) if equipment_dir else None,
            portable=portable,
        )
        if db_path:
            settings.db_path = Path(db_path)
        return settings

    def validate(self) -> list[str]:
        """
        Validate settings.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if self.events_path and not self.events_path.exists():
            errors.append(f"Event feed not found: {self.events_path}")

        if self.poll_interval <= 0:
            errors.append("poll_interval must be positive")

        if self.save_debounce_seconds < 0 or self.stats_throttle_seconds < 0:
            errors.append("Scheduler windows must not be negative")

        return errors
