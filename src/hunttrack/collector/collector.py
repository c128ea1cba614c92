"""Collector - feed loop that pushes parsed events into the tracker."""

import time
from pathlib import Path
from typing import Callable, Optional

from hunttrack.config.logging import get_logger
from hunttrack.core.events import LogEvent
from hunttrack.db.repository import Repository
from hunttrack.parser.event_parser import parse_event_line
from hunttrack.parser.feed_tailer import FeedTailer
from hunttrack.tracker.session_tracker import SessionTracker

logger = get_logger()


class Collector:
    """
    Watches the event feed and drives the session tracker.

    Each parsed event goes to the active session; the tracker's debounced
    saves and throttled stats are polled on every pass.
    """

    def __init__(
        self,
        tracker: SessionTracker,
        events_path: Path,
        on_event: Optional[Callable[[LogEvent, bool], None]] = None,
    ) -> None:
        """
        Initialize collector.

        Args:
            tracker: Session tracker receiving events
            events_path: JSON-lines event feed
            on_event: Callback per parsed event with whether it was recorded
        """
        self.tracker = tracker
        self.repository: Repository = tracker.repository
        self.tailer = FeedTailer(events_path)
        self.on_event = on_event
        self._running = False
        self.events_seen = 0
        self.events_recorded = 0

    def initialize(self) -> None:
        """Resume from the saved feed position, or skip existing content on first run."""
        saved = self.repository.get_feed_position()
        if saved is not None and saved.path == self.tailer.path:
            self.tailer.restore(saved)
        else:
            self.tailer.skip_existing()

    def process_line(self, line: str) -> Optional[LogEvent]:
        """
        Process a single feed line.

        Returns:
            The parsed event, or None if the line was skipped
        """
        event = parse_event_line(line)
        if event is None:
            return None

        self.events_seen += 1
        recorded = self.tracker.add_event(event)
        if recorded:
            self.events_recorded += 1
        if self.on_event:
            self.on_event(event, recorded)
        return event

    def process_file(self, from_beginning: bool = False) -> int:
        """
        Process everything currently in the feed (non-blocking).

        Args:
            from_beginning: If True, read from start; otherwise from last position

        Returns:
            Number of lines processed
        """
        if from_beginning:
            self.tailer.rewind()

        line_count = 0
        for line in self.tailer.read_lines():
            self.process_line(line)
            line_count += 1

        if line_count:
            self.repository.save_feed_position(self.tailer.position)
        self.tracker.poll()
        return line_count

    def tail(self, poll_interval: float = 0.5) -> None:
        """
        Continuously tail the feed.

        Args:
            poll_interval: Seconds between file checks
        """
        self._running = True
        consecutive_errors = 0
        max_consecutive_errors = 5

        while self._running:
            try:
                line_count = self.process_file()
                consecutive_errors = 0
                if line_count == 0:
                    time.sleep(poll_interval)
            except Exception as e:
                consecutive_errors += 1
                logger.warning(f"Collector error (attempt {consecutive_errors}): {e}")

                if consecutive_errors >= max_consecutive_errors:
                    raise

                # Exponential backoff capped at 5 seconds
                backoff = min(poll_interval * (2 ** consecutive_errors), 5.0)
                time.sleep(backoff)

    def stop(self) -> None:
        """Stop the tail loop and write any pending session state."""
        self._running = False
        self.tracker.flush()
