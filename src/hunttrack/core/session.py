"""Session aggregate - lifecycle state machine over an event log."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Protocol

from hunttrack.config.logging import get_logger
from hunttrack.core.clock import Clock, SystemClock, active_seconds
from hunttrack.core.events import SHOT_KINDS, LogEvent
from hunttrack.core.fold import (
    RecordedEvent,
    RunningStats,
    fold_event,
    rebuild_running_stats,
)
from hunttrack.core.loadout import Loadout, effective_cost_per_shot

logger = get_logger()


class SessionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    PAUSED = "paused"
    ENDED = "ended"


@dataclass(frozen=True)
class LoadoutSnapshot:
    """Loadout as it was when a session last used it."""

    id: str
    name: str
    cost_per_shot: float


@dataclass
class Session:
    """A tracked period of play."""

    id: str
    name: str
    started_at: datetime
    tags: list[str] = field(default_factory=list)
    ended_at: Optional[datetime] = None
    paused_at: Optional[datetime] = None
    total_paused_seconds: float = 0.0  # Closed pauses only; never decreases
    events: list[RecordedEvent] = field(default_factory=list)
    running_stats: Optional[RunningStats] = None  # None only for legacy records
    loadout_snapshots: dict[str, LoadoutSnapshot] = field(default_factory=dict)

    # Manual expenses in PED
    manual_armor_cost: float = 0.0
    manual_fap_cost: float = 0.0
    manual_misc_cost: float = 0.0

    # Cost of a shot fired with no loadout active
    manual_cost_per_shot: float = 0.0

    # Only this player's globals count (any when unset)
    player_name: Optional[str] = None

    @property
    def is_ended(self) -> bool:
        return self.ended_at is not None

    @property
    def is_paused(self) -> bool:
        return self.paused_at is not None and self.ended_at is None

    @property
    def state(self) -> SessionState:
        if self.ended_at is not None:
            return SessionState.ENDED
        if self.paused_at is not None:
            return SessionState.PAUSED
        return SessionState.ACTIVE

    @property
    def event_count(self) -> int:
        return len(self.events)


def session_duration(session: Session, now: datetime) -> float:
    """Active seconds of a session, excluding every pause."""
    return active_seconds(
        started_at=session.started_at,
        now=now,
        ended_at=session.ended_at,
        paused_at=session.paused_at,
        total_paused_seconds=session.total_paused_seconds,
    )


def create_session(
    started_at: datetime,
    name: Optional[str] = None,
    tags: Optional[list[str]] = None,
    player_name: Optional[str] = None,
) -> Session:
    """Create a new, empty, active session."""
    return Session(
        id=str(uuid.uuid4()),
        name=name or f"Session {started_at:%Y-%m-%d %H:%M}",
        started_at=started_at,
        tags=list(tags or []),
        running_stats=RunningStats(),
        player_name=player_name,
    )


def end_session(session: Session, now: datetime) -> Session:
    """
    Stamp ended_at, closing any in-progress pause first.

    Already-ended sessions are left untouched.
    """
    if session.ended_at is not None:
        return session
    if session.paused_at is not None:
        session.total_paused_seconds += max(0.0, (now - session.paused_at).total_seconds())
        session.paused_at = None
    session.ended_at = now
    return session


# --- Tracking context ---


class LoadoutSource(Protocol):
    """Where the engine looks up loadouts."""

    def get(self, loadout_id: str) -> Optional[Loadout]: ...

    def get_active(self) -> Optional[Loadout]: ...


class LoadoutBook:
    """In-memory loadout collection with an active pointer."""

    def __init__(self, loadouts: Optional[list[Loadout]] = None, active_id: Optional[str] = None) -> None:
        self._loadouts: dict[str, Loadout] = {l.id: l for l in loadouts or []}
        self.active_id = active_id

    def get(self, loadout_id: str) -> Optional[Loadout]:
        return self._loadouts.get(loadout_id)

    def get_active(self) -> Optional[Loadout]:
        if self.active_id is None:
            return None
        return self._loadouts.get(self.active_id)

    def put(self, loadout: Loadout) -> None:
        self._loadouts[loadout.id] = loadout

    def remove(self, loadout_id: str) -> bool:
        if self.active_id == loadout_id:
            self.active_id = None
        return self._loadouts.pop(loadout_id, None) is not None

    def set_active(self, loadout_id: Optional[str]) -> None:
        self.active_id = loadout_id

    def all(self) -> list[Loadout]:
        return list(self._loadouts.values())


@dataclass
class TrackingContext:
    """Everything a session operation needs from the outside world."""

    loadouts: LoadoutSource = field(default_factory=LoadoutBook)
    clock: Clock = field(default_factory=SystemClock)
    player_name: Optional[str] = None


# --- Aggregate ---


class SessionAggregate:
    """
    Owns the single active session.

    State machine: idle -> active <-> paused -> ended, and an ended
    session can become active again through resume(). Every operation
    takes the tracking context explicitly.
    """

    def __init__(self, session: Optional[Session] = None) -> None:
        self._session = session

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def state(self) -> SessionState:
        if self._session is None:
            return SessionState.IDLE
        return self._session.state

    def _finalize_current(self, now: datetime) -> Optional[Session]:
        current = self._session
        if current is None or current.ended_at is not None:
            return None
        end_session(current, now)
        logger.info(f"Session finalized: {current.name} ({current.id})")
        return current

    def start(
        self,
        ctx: TrackingContext,
        name: Optional[str] = None,
        tags: Optional[list[str]] = None,
    ) -> tuple[Session, Optional[Session]]:
        """
        Start a new session, ending the current one first.

        Returns:
            Tuple of (new_session, finalized_previous or None)
        """
        now = ctx.clock.now()
        previous = self._finalize_current(now)
        session = create_session(now, name=name, tags=tags, player_name=ctx.player_name)
        self._session = session
        logger.info(f"Session started: {session.name} ({session.id})")
        return session, previous

    def add_event(self, ctx: TrackingContext, event: LogEvent) -> bool:
        """
        Record and fold one event into the active session.

        Shots are priced with the loadout active right now, so a loadout
        swap applies from the next event on.

        Returns:
            False when there is no session or it is ended or paused
        """
        session = self._session
        if session is None or session.ended_at is not None or session.paused_at is not None:
            return False

        loadout = ctx.loadouts.get_active()
        cost_per_shot = None
        if event.kind in SHOT_KINDS:
            if loadout is not None:
                cost_per_shot = effective_cost_per_shot(loadout)
                session.loadout_snapshots[loadout.id] = LoadoutSnapshot(
                    id=loadout.id, name=loadout.name, cost_per_shot=cost_per_shot
                )
            else:
                cost_per_shot = session.manual_cost_per_shot

        recorded = RecordedEvent(
            event=event,
            loadout_id=loadout.id if loadout is not None else None,
            cost_per_shot=cost_per_shot,
        )
        session.events.append(recorded)

        if session.running_stats is None:
            session.running_stats = rebuild_running_stats(session)
        else:
            fold_event(session.running_stats, recorded, session.player_name)
        return True

    def pause(self, ctx: TrackingContext) -> bool:
        session = self._session
        if session is None or session.ended_at is not None or session.paused_at is not None:
            return False
        session.paused_at = ctx.clock.now()
        logger.info(f"Session paused: {session.id}")
        return True

    def unpause(self, ctx: TrackingContext) -> bool:
        session = self._session
        if session is None or session.ended_at is not None or session.paused_at is None:
            return False
        now = ctx.clock.now()
        session.total_paused_seconds += max(0.0, (now - session.paused_at).total_seconds())
        session.paused_at = None
        logger.info(f"Session unpaused: {session.id}")
        return True

    def stop(self, ctx: TrackingContext) -> Optional[Session]:
        """End the active session. Returns None when nothing was running."""
        return self._finalize_current(ctx.clock.now())

    def resume(
        self, ctx: TrackingContext, session: Session
    ) -> tuple[Session, Optional[Session]]:
        """
        Reopen a historical session for recording.

        Any other active session is finalized first. Legacy sessions without
        running stats get them rebuilt from the event log.

        Returns:
            Tuple of (resumed_session, finalized_previous or None)
        """
        now = ctx.clock.now()
        previous = None
        if self._session is not None and self._session.id != session.id:
            previous = self._finalize_current(now)

        session.ended_at = None
        if session.running_stats is None:
            session.running_stats = rebuild_running_stats(session)
            logger.info(
                f"Rebuilt running stats for legacy session {session.id} "
                f"({len(session.events)} events)"
            )
        self._session = session
        logger.info(f"Session resumed: {session.name} ({session.id})")
        return session, previous

    def update_expenses(
        self,
        armor: Optional[float] = None,
        fap: Optional[float] = None,
        misc: Optional[float] = None,
    ) -> bool:
        """Set manual expense overrides (PED). None leaves a value unchanged."""
        session = self._session
        if session is None:
            return False
        if armor is not None:
            session.manual_armor_cost = armor
        if fap is not None:
            session.manual_fap_cost = fap
        if misc is not None:
            session.manual_misc_cost = misc
        return True

    def reset(self) -> None:
        """Forget the active session without ending it."""
        self._session = None


# --- Serialization ---


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def session_to_dict(session: Session) -> dict[str, Any]:
    """Serialize a session to a self-contained JSON-compatible record."""
    return {
        "id": session.id,
        "name": session.name,
        "tags": list(session.tags),
        "started_at": session.started_at.isoformat(),
        "ended_at": _iso(session.ended_at),
        "paused_at": _iso(session.paused_at),
        "total_paused_seconds": session.total_paused_seconds,
        "events": [e.to_dict() for e in session.events],
        "running_stats": session.running_stats.to_dict() if session.running_stats else None,
        "loadout_snapshots": {
            key: {"id": s.id, "name": s.name, "cost_per_shot": s.cost_per_shot}
            for key, s in session.loadout_snapshots.items()
        },
        "manual_armor_cost": session.manual_armor_cost,
        "manual_fap_cost": session.manual_fap_cost,
        "manual_misc_cost": session.manual_misc_cost,
        "manual_cost_per_shot": session.manual_cost_per_shot,
        "player_name": session.player_name,
    }


def session_from_dict(data: dict[str, Any]) -> Session:
    """Deserialize a session record; a missing running_stats stays None."""
    running = data.get("running_stats")
    return Session(
        id=data["id"],
        name=data.get("name", ""),
        started_at=datetime.fromisoformat(data["started_at"]),
        tags=list(data.get("tags") or []),
        ended_at=_parse(data.get("ended_at")),
        paused_at=_parse(data.get("paused_at")),
        total_paused_seconds=float(data.get("total_paused_seconds", 0.0)),
        events=[RecordedEvent.from_dict(e) for e in data.get("events", [])],
        running_stats=RunningStats.from_dict(running) if running else None,
        loadout_snapshots={
            key: LoadoutSnapshot(
                id=s["id"], name=s.get("name", ""), cost_per_shot=float(s.get("cost_per_shot", 0.0))
            )
            for key, s in (data.get("loadout_snapshots") or {}).items()
        },
        manual_armor_cost=float(data.get("manual_armor_cost", 0.0)),
        manual_fap_cost=float(data.get("manual_fap_cost", 0.0)),
        manual_misc_cost=float(data.get("manual_misc_cost", 0.0)),
        manual_cost_per_shot=float(data.get("manual_cost_per_shot", 0.0)),
        player_name=data.get("player_name"),
    )
