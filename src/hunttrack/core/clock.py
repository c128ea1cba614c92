"""Time sources and pause-aware elapsed time."""

from datetime import datetime, timedelta
from typing import Optional, Protocol


class Clock(Protocol):
    """Anything that can tell the current time."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock."""

    def now(self) -> datetime:
        return datetime.now()


class ManualClock:
    """
    Clock that only moves when told to.

    Used to drive sessions and schedulers deterministically.
    """

    def __init__(self, start: Optional[datetime] = None) -> None:
        self._now = start or datetime(2024, 1, 1, 12, 0, 0)

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> datetime:
        """Move the clock forward and return the new time."""
        self._now = self._now + timedelta(seconds=seconds)
        return self._now

    def set(self, moment: datetime) -> None:
        self._now = moment


def active_seconds(
    started_at: datetime,
    now: datetime,
    ended_at: Optional[datetime] = None,
    paused_at: Optional[datetime] = None,
    total_paused_seconds: float = 0.0,
) -> float:
    """
    Wall time between start and end (or now) minus every paused interval.

    An in-progress pause counts up to now. Never negative.

    Args:
        started_at: When timing started
        now: Current time
        ended_at: When timing stopped, if it has
        paused_at: Start of the current pause, if paused
        total_paused_seconds: Closed pause intervals already accumulated

    Returns:
        Active seconds
    """
    end = ended_at if ended_at is not None else now
    elapsed = (end - started_at).total_seconds() - total_paused_seconds
    if paused_at is not None:
        elapsed -= (now - paused_at).total_seconds()
    return max(0.0, elapsed)
