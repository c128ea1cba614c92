"""Debounce and throttle disciplines driven by an injectable clock."""

from datetime import datetime
from typing import Any, Callable, Generic, Hashable, Optional, TypeVar

from hunttrack.config.logging import get_logger
from hunttrack.core.clock import Clock, SystemClock

logger = get_logger()

T = TypeVar("T")

DEFAULT_DEBOUNCE_SECONDS = 0.5
DEFAULT_THROTTLE_SECONDS = 0.5


class DebouncedWriter(Generic[T]):
    """
    Coalesces writes so only the latest payload per key is written.

    request() replaces any pending payload with the same key; pending
    payloads are written in the order their keys were first requested, on
    the first poll() once the delay has elapsed since the last request.
    flush() writes immediately. A failed write stops the pass and keeps it
    and everything after it pending, so the next attempt retries with the
    newest state in the same order.
    """

    def __init__(
        self,
        write: Callable[[T], Any],
        delay: float = DEFAULT_DEBOUNCE_SECONDS,
        clock: Optional[Clock] = None,
        key: Optional[Callable[[T], Hashable]] = None,
    ) -> None:
        self._write = write
        self.delay = delay
        self._clock = clock or SystemClock()
        self._key = key or (lambda payload: None)
        self._pending: dict[Hashable, T] = {}
        self._requested_at: Optional[datetime] = None
        self.last_error: Optional[Exception] = None
        self.write_count = 0

    @property
    def pending(self) -> bool:
        return bool(self._pending)

    def request(self, payload: T) -> None:
        """Schedule a write of payload, superseding any unflushed one with its key."""
        self._pending[self._key(payload)] = payload
        self._requested_at = self._clock.now()

    def due(self) -> bool:
        if not self._pending or self._requested_at is None:
            return False
        waited = (self._clock.now() - self._requested_at).total_seconds()
        return waited >= self.delay

    def poll(self) -> bool:
        """
        Write the pending payloads if the debounce delay has passed.

        Returns:
            True if everything pending was written
        """
        if not self.due():
            return False
        return self._write_pending()

    def flush(self) -> bool:
        """Write the pending payloads now (no-op if nothing is pending)."""
        if not self._pending:
            return False
        return self._write_pending()

    def cancel(self, payload: Optional[T] = None) -> None:
        """Drop the pending write for payload's key, or every pending write."""
        if payload is None:
            self._pending.clear()
        else:
            self._pending.pop(self._key(payload), None)
        if not self._pending:
            self._requested_at = None

    def _write_pending(self) -> bool:
        for key, payload in list(self._pending.items()):
            try:
                self._write(payload)
            except Exception as e:
                self.last_error = e
                logger.warning(f"Debounced write failed, will retry: {e}")
                # Restart the delay so a failing store isn't hammered
                self._requested_at = self._clock.now()
                return False

            # A newer request may have arrived during the write
            if self._pending.get(key) is payload:
                del self._pending[key]
            self.write_count += 1

        self.last_error = None
        if not self._pending:
            self._requested_at = None
        return True


class Throttle(Generic[T]):
    """
    Runs a computation at most once per interval.

    A request arriving more than the interval after the last run executes
    immediately. Requests inside the window are marked pending and run on
    the first poll() after the window closes.
    """

    def __init__(
        self,
        compute: Callable[[], T],
        interval: float = DEFAULT_THROTTLE_SECONDS,
        clock: Optional[Clock] = None,
    ) -> None:
        self._compute = compute
        self.interval = interval
        self._clock = clock or SystemClock()
        self._last_run: Optional[datetime] = None
        self._pending = False
        self.last_result: Optional[T] = None
        self.run_count = 0

    @property
    def pending(self) -> bool:
        return self._pending

    def _window_open(self) -> bool:
        if self._last_run is None:
            return True
        elapsed = (self._clock.now() - self._last_run).total_seconds()
        return elapsed > self.interval

    def request(self) -> Optional[T]:
        """
        Ask for a recompute.

        Returns:
            The fresh result when it ran now, else the previous result
        """
        if self._window_open():
            return self._run()
        self._pending = True
        return self.last_result

    def poll(self) -> Optional[T]:
        """Run a pending recompute once the window has closed."""
        if self._pending and self._window_open():
            return self._run()
        return self.last_result

    def reset(self) -> None:
        self._last_run = None
        self._pending = False
        self.last_result = None

    def _run(self) -> T:
        self._pending = False
        self._last_run = self._clock.now()
        self.last_result = self._compute()
        self.run_count += 1
        return self.last_result
