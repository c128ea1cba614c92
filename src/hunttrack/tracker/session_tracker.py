"""Session tracking service - engine plus persistence and scheduling."""

import threading
from typing import Optional

from hunttrack.config.logging import get_logger
from hunttrack.core.clock import Clock, SystemClock
from hunttrack.core.events import LogEvent
from hunttrack.core.loadout import Loadout
from hunttrack.core.markup import MarkupConfig, MarkupLibrary
from hunttrack.core.scheduler import (
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_THROTTLE_SECONDS,
    DebouncedWriter,
    Throttle,
)
from hunttrack.core.session import Session, SessionAggregate, TrackingContext
from hunttrack.core.stats import (
    QuickStats,
    SessionStats,
    calculate_session_stats,
    quick_stats,
)
from hunttrack.db.repository import ACTIVE_SESSION_KEY, Repository

logger = get_logger()


class RepositoryLoadouts:
    """Loadout source that reads storage on every lookup."""

    def __init__(self, repository: Repository) -> None:
        self._repository = repository

    def get(self, loadout_id: str) -> Optional[Loadout]:
        return self._repository.get_loadout(loadout_id)

    def get_active(self) -> Optional[Loadout]:
        return self._repository.get_active_loadout()


class SessionTracker:
    """
    Runs the session engine for the application.

    Saves are debounced and full stats are throttled; switching sessions
    flushes the outgoing one synchronously before the next one starts.
    Calls are serialized with a lock since the API and the collector
    share one tracker.
    """

    def __init__(
        self,
        repository: Repository,
        clock: Optional[Clock] = None,
        player_name: Optional[str] = None,
        save_debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        stats_throttle_seconds: float = DEFAULT_THROTTLE_SECONDS,
    ) -> None:
        self.repository = repository
        self.clock = clock or SystemClock()
        self.context = TrackingContext(
            loadouts=RepositoryLoadouts(repository),
            clock=self.clock,
            player_name=player_name,
        )
        self.aggregate = SessionAggregate()
        self._lock = threading.RLock()

        self._writer: DebouncedWriter[Session] = DebouncedWriter(
            self._save,
            delay=save_debounce_seconds,
            clock=self.clock,
            key=lambda session: session.id,
        )
        self._stats: Throttle[Optional[SessionStats]] = Throttle(
            self._compute_stats, interval=stats_throttle_seconds, clock=self.clock
        )

        self._library: Optional[MarkupLibrary] = None
        self._markup_config: Optional[MarkupConfig] = None

    # --- Persistence ---

    def _save(self, session: Session) -> None:
        self.repository.save_session(session)
        if session.ended_at is None:
            self.repository.set_setting(ACTIVE_SESSION_KEY, session.id)
        elif self.repository.get_setting(ACTIVE_SESSION_KEY) == session.id:
            self.repository.delete_setting(ACTIVE_SESSION_KEY)

    def _save_now(self, session: Session) -> bool:
        """
        Write a session now, after any writes queued before it.

        A failure leaves the session queued; poll() retries it and
        last_save_error reports it until a write succeeds.
        """
        self._writer.request(session)
        saved = self._writer.flush()
        if not saved:
            logger.error(f"Failed to save session {session.id}: {self._writer.last_error}")
        return saved

    @property
    def last_save_error(self) -> Optional[Exception]:
        return self._writer.last_error

    def _touch(self) -> None:
        """Schedule a save and a stats refresh after a mutation."""
        session = self.aggregate.session
        if session is not None:
            self._writer.request(session)
        self._stats.request()

    # --- Lifecycle ---

    @property
    def session(self) -> Optional[Session]:
        return self.aggregate.session

    def restore(self) -> Optional[Session]:
        """
        Pick up the session that was active when the app last exited.

        Other open sessions left behind by a crash are ended.
        """
        with self._lock:
            active_id = self.repository.get_setting(ACTIVE_SESSION_KEY)
            now = self.clock.now()
            restored = None
            for summary in self.repository.get_open_sessions():
                session = self.repository.load_session(summary.id)
                if session is None:
                    continue
                if summary.id == active_id and restored is None:
                    restored, _ = self.aggregate.resume(self.context, session)
                    continue
                session.ended_at = session.paused_at or now
                session.paused_at = None
                self._save_now(session)
                logger.info(f"Ended orphaned session {session.id}")
            if restored is not None:
                logger.info(f"Restored active session {restored.id}")
            return restored

    def _flush_finalized(self, previous: Optional[Session]) -> None:
        # The outgoing session is queued ahead of the next one, so storage
        # never shows the new session active while the old one is open
        if previous is not None:
            self._save_now(previous)

    def start(self, name: Optional[str] = None, tags: Optional[list[str]] = None) -> Session:
        with self._lock:
            session, previous = self.aggregate.start(self.context, name=name, tags=tags)
            self._flush_finalized(previous)
            self._stats.reset()
            self._save_now(session)
            return session

    def resume(self, session_id: str) -> Optional[Session]:
        """Reopen a stored session. Returns None if it does not exist."""
        with self._lock:
            current = self.aggregate.session
            if current is not None and current.id == session_id:
                target = current
            else:
                target = self.repository.load_session(session_id)
            if target is None:
                return None
            session, previous = self.aggregate.resume(self.context, target)
            self._flush_finalized(previous)
            self._stats.reset()
            self._save_now(session)
            return session

    def stop(self) -> Optional[Session]:
        with self._lock:
            session = self.aggregate.stop(self.context)
            if session is not None:
                self._save_now(session)
                self._stats.request()
            return session

    def pause(self) -> bool:
        with self._lock:
            changed = self.aggregate.pause(self.context)
            if changed:
                self._touch()
            return changed

    def unpause(self) -> bool:
        with self._lock:
            changed = self.aggregate.unpause(self.context)
            if changed:
                self._touch()
            return changed

    def add_event(self, event: LogEvent) -> bool:
        with self._lock:
            added = self.aggregate.add_event(self.context, event)
            if added:
                self._touch()
            return added

    def update_expenses(
        self,
        armor: Optional[float] = None,
        fap: Optional[float] = None,
        misc: Optional[float] = None,
    ) -> bool:
        with self._lock:
            changed = self.aggregate.update_expenses(armor=armor, fap=fap, misc=misc)
            session = self.aggregate.session
            if changed and session.is_ended:
                self._save_now(session)
                self._stats.request()
            elif changed:
                self._touch()
            return changed

    def discard(self, session_id: str) -> None:
        """Forget an ended session after it was deleted from storage."""
        with self._lock:
            session = self.aggregate.session
            if session is not None and session.id == session_id and session.is_ended:
                self._writer.cancel(session)
                self.aggregate.reset()
                self._stats.reset()

    def set_player_name(self, player_name: Optional[str]) -> None:
        with self._lock:
            self.context.player_name = player_name

    # --- Stats ---

    def set_markup(self, library: Optional[MarkupLibrary], config: Optional[MarkupConfig]) -> None:
        """Replace the markup used for full stats."""
        with self._lock:
            self._library = library
            self._markup_config = config
            self._stats.reset()

    def reload_markup(self) -> None:
        self.set_markup(self.repository.load_markup_library(), self.repository.get_markup_config())

    def _compute_stats(self) -> Optional[SessionStats]:
        session = self.aggregate.session
        if session is None:
            return None
        return calculate_session_stats(
            session,
            self.clock.now(),
            loadout=self.context.loadouts.get_active(),
            library=self._library,
            markup_config=self._markup_config,
        )

    def quick_stats(self) -> Optional[QuickStats]:
        with self._lock:
            session = self.aggregate.session
            if session is None:
                return None
            return quick_stats(session, self.clock.now())

    def full_stats(self) -> Optional[SessionStats]:
        """Throttled full stats for the active session."""
        with self._lock:
            return self._stats.request()

    # --- Scheduling ---

    def poll(self) -> None:
        """Run due debounced saves and pending stats refreshes."""
        with self._lock:
            self._writer.poll()
            self._stats.poll()

    def flush(self) -> bool:
        """Write any pending save now."""
        with self._lock:
            return self._writer.flush()

    def run_poller(self, interval: float, stop: threading.Event) -> None:
        """
        Poll every interval seconds until stop is set.

        Keeps debounced saves landing when no collector is reading a feed.
        """
        while not stop.wait(interval):
            try:
                self.poll()
            except Exception as e:
                logger.error(f"Tracker poll failed: {e}")
