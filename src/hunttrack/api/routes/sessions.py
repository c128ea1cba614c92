"""Sessions API routes."""

from dataclasses import asdict
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from hunttrack.api.dependencies import get_repository, get_tracker
from hunttrack.api.schemas import (
    EventRequest,
    EventResponse,
    ExpensesRequest,
    QuickStatsResponse,
    SessionListResponse,
    SessionResponse,
    SessionSummaryResponse,
    StartSessionRequest,
)
from hunttrack.core.events import event_from_log
from hunttrack.core.session import Session, SessionState, session_duration
from hunttrack.core.stats import calculate_session_stats
from hunttrack.db.repository import Repository, SessionSummary
from hunttrack.tracker.session_tracker import SessionTracker

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


def _summary_state(summary: SessionSummary) -> SessionState:
    if summary.ended_at is not None:
        return SessionState.ENDED
    if summary.paused_at is not None:
        return SessionState.PAUSED
    return SessionState.ACTIVE


def _session_response(session: Session, now: datetime) -> SessionResponse:
    return SessionResponse(
        id=session.id,
        name=session.name,
        tags=session.tags,
        state=session.state,
        started_at=session.started_at,
        ended_at=session.ended_at,
        paused_at=session.paused_at,
        total_paused_seconds=session.total_paused_seconds,
        duration_seconds=session_duration(session, now),
        event_count=session.event_count,
        manual_armor_cost=session.manual_armor_cost,
        manual_fap_cost=session.manual_fap_cost,
        manual_misc_cost=session.manual_misc_cost,
        manual_cost_per_shot=session.manual_cost_per_shot,
        player_name=session.player_name,
        loadouts_used=sorted(s.name for s in session.loadout_snapshots.values()),
    )


def _find_session(session_id: str, repo: Repository, tracker: SessionTracker) -> Session:
    """Active session if it matches, else the stored one; 404 if neither."""
    active = tracker.session
    if active is not None and active.id == session_id:
        return active
    session = repo.load_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _require_active(session_id: str, repo: Repository, tracker: SessionTracker) -> Session:
    """The active session with this id; 404 if unknown, 409 if not the active one."""
    session = _find_session(session_id, repo, tracker)
    if tracker.session is None or tracker.session.id != session_id:
        raise HTTPException(status_code=409, detail="Session is not the active session")
    return session


@router.get("", response_model=SessionListResponse)
def list_sessions(
    limit: Optional[int] = Query(None, ge=1),
    repo: Repository = Depends(get_repository),
    tracker: SessionTracker = Depends(get_tracker),
) -> SessionListResponse:
    """List stored sessions, newest first."""
    # Pending debounced writes would otherwise hide the latest counts
    tracker.flush()
    summaries = repo.list_sessions(limit=limit)
    return SessionListResponse(
        sessions=[
            SessionSummaryResponse(
                id=s.id,
                name=s.name,
                tags=s.tags,
                state=_summary_state(s),
                started_at=s.started_at,
                ended_at=s.ended_at,
                paused_at=s.paused_at,
                event_count=s.event_count,
            )
            for s in summaries
        ],
        total=len(summaries),
    )


@router.post("", response_model=SessionResponse, status_code=201)
def start_session(
    body: StartSessionRequest = StartSessionRequest(),
    tracker: SessionTracker = Depends(get_tracker),
) -> SessionResponse:
    """Start a new session, ending the active one first."""
    session = tracker.start(name=body.name, tags=body.tags)
    return _session_response(session, tracker.clock.now())


@router.get("/active", response_model=SessionResponse)
def get_active_session(tracker: SessionTracker = Depends(get_tracker)) -> SessionResponse:
    session = tracker.session
    if session is None:
        raise HTTPException(status_code=404, detail="No active session")
    return _session_response(session, tracker.clock.now())


@router.get("/active/quick", response_model=QuickStatsResponse)
def get_active_quick_stats(tracker: SessionTracker = Depends(get_tracker)) -> QuickStatsResponse:
    """Cheap counters for the live display."""
    stats = tracker.quick_stats()
    if stats is None:
        raise HTTPException(status_code=404, detail="No active session")
    return QuickStatsResponse(**asdict(stats))


@router.post("/active/events", response_model=EventResponse)
def add_event(
    body: EventRequest,
    tracker: SessionTracker = Depends(get_tracker),
) -> EventResponse:
    """
    Record one event in the active session.

    Events are rejected with 409 while no session is recording
    (none active, paused or ended).
    """
    if tracker.session is None:
        raise HTTPException(status_code=409, detail="No active session")

    timestamp = body.timestamp or tracker.clock.now()
    event = event_from_log(body.type, timestamp, body.data, body.raw)
    if not tracker.add_event(event):
        raise HTTPException(status_code=409, detail="Session is not recording")
    return EventResponse(
        kind=event.kind.value,
        recorded=True,
        event_count=tracker.session.event_count,
    )


@router.get("/{session_id}", response_model=SessionResponse)
def get_session(
    session_id: str,
    repo: Repository = Depends(get_repository),
    tracker: SessionTracker = Depends(get_tracker),
) -> SessionResponse:
    session = _find_session(session_id, repo, tracker)
    return _session_response(session, tracker.clock.now())


@router.post("/{session_id}/stop", response_model=SessionResponse)
def stop_session(
    session_id: str,
    repo: Repository = Depends(get_repository),
    tracker: SessionTracker = Depends(get_tracker),
) -> SessionResponse:
    _require_active(session_id, repo, tracker)
    session = tracker.stop()
    if session is None:
        raise HTTPException(status_code=409, detail="Session already ended")
    return _session_response(session, tracker.clock.now())


@router.post("/{session_id}/pause", response_model=SessionResponse)
def pause_session(
    session_id: str,
    repo: Repository = Depends(get_repository),
    tracker: SessionTracker = Depends(get_tracker),
) -> SessionResponse:
    session = _require_active(session_id, repo, tracker)
    if not tracker.pause():
        raise HTTPException(status_code=409, detail=f"Cannot pause a {session.state.value} session")
    return _session_response(session, tracker.clock.now())


@router.post("/{session_id}/unpause", response_model=SessionResponse)
def unpause_session(
    session_id: str,
    repo: Repository = Depends(get_repository),
    tracker: SessionTracker = Depends(get_tracker),
) -> SessionResponse:
    session = _require_active(session_id, repo, tracker)
    if not tracker.unpause():
        raise HTTPException(status_code=409, detail=f"Cannot unpause a {session.state.value} session")
    return _session_response(session, tracker.clock.now())


@router.post("/{session_id}/resume", response_model=SessionResponse)
def resume_session(
    session_id: str,
    tracker: SessionTracker = Depends(get_tracker),
) -> SessionResponse:
    """Reopen a stored session for recording, ending the active one first."""
    session = tracker.resume(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return _session_response(session, tracker.clock.now())


@router.patch("/{session_id}/expenses", response_model=SessionResponse)
def update_expenses(
    session_id: str,
    body: ExpensesRequest,
    repo: Repository = Depends(get_repository),
    tracker: SessionTracker = Depends(get_tracker),
) -> SessionResponse:
    """Set manual armor/FAP/misc expenses of any session."""
    for value in (body.armor, body.fap, body.misc):
        if value is not None and value < 0:
            raise HTTPException(status_code=422, detail="Expenses must not be negative")

    session = _find_session(session_id, repo, tracker)
    if session is tracker.session:
        tracker.update_expenses(armor=body.armor, fap=body.fap, misc=body.misc)
    else:
        if body.armor is not None:
            session.manual_armor_cost = body.armor
        if body.fap is not None:
            session.manual_fap_cost = body.fap
        if body.misc is not None:
            session.manual_misc_cost = body.misc
        repo.save_session(session)
    return _session_response(session, tracker.clock.now())


@router.delete("/{session_id}")
def delete_session(
    session_id: str,
    repo: Repository = Depends(get_repository),
    tracker: SessionTracker = Depends(get_tracker),
) -> dict:
    active = tracker.session
    if active is not None and active.id == session_id and not active.is_ended:
        raise HTTPException(status_code=409, detail="Stop the session before deleting it")
    if not repo.delete_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    tracker.discard(session_id)
    return {"success": True, "id": session_id}


@router.get("/{session_id}/stats")
def get_session_stats(
    session_id: str,
    repo: Repository = Depends(get_repository),
    tracker: SessionTracker = Depends(get_tracker),
) -> dict[str, Any]:
    """Full stats report; the active session's report is throttled."""
    active = tracker.session
    if active is not None and active.id == session_id and not active.is_ended:
        stats = tracker.full_stats()
    else:
        session = repo.load_session(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail="Session not found")
        stats = calculate_session_stats(
            session,
            session.ended_at or tracker.clock.now(),
            loadout=repo.get_active_loadout(),
            library=repo.load_markup_library(),
            markup_config=repo.get_markup_config(),
        )
    return asdict(stats)
