"""Event feed parser - converts JSON lines to typed events."""

import json
from datetime import datetime
from typing import Any, Optional

from hunttrack.config.logging import get_logger
from hunttrack.core.events import LogEvent, event_from_log

logger = get_logger()


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a feed timestamp.

    Accepts ISO 8601 strings (a trailing "Z" is allowed), the game's
    "YYYY-MM-DD HH:MM:SS" format, and epoch milliseconds.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1]
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def parse_event_line(line: str) -> Optional[LogEvent]:
    """
    Parse one feed line.

    Expected shape: {"timestamp": ..., "type": "HIT", "data": {...}, "raw": "..."}

    Args:
        line: Raw feed line (may include newline)

    Returns:
        Typed event, or None for blank or malformed lines
    """
    line = line.strip()
    if not line:
        return None

    try:
        record = json.loads(line)
    except json.JSONDecodeError:
        logger.debug(f"Skipping malformed feed line: {line[:120]}")
        return None

    if not isinstance(record, dict):
        logger.debug(f"Skipping non-object feed line: {line[:120]}")
        return None

    raw_type = record.get("type")
    timestamp = parse_timestamp(record.get("timestamp"))
    if not isinstance(raw_type, str) or timestamp is None:
        logger.debug(f"Skipping feed line without type/timestamp: {line[:120]}")
        return None

    data = record.get("data")
    if not isinstance(data, dict):
        data = {}

    return event_from_log(raw_type, timestamp, data, raw=str(record.get("raw", "")))
