"""FastAPI application factory."""

from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from hunttrack.api import dependencies
from hunttrack.api.routes import loadouts, markup, sessions
from hunttrack.api.schemas import StatusResponse
from hunttrack.config.preferences import load_preferences
from hunttrack.db.connection import Database
from hunttrack.db.repository import Repository
from hunttrack.tracker.session_tracker import SessionTracker
from hunttrack.version import __version__


def create_app(
    db: Database,
    tracker: Optional[SessionTracker] = None,
    events_path: Optional[Path] = None,
    collector_running: bool = False,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        db: Database connection
        tracker: Session tracker shared with the collector (created if None)
        events_path: Event feed being tailed, for the status endpoint
        collector_running: Whether the collector is actively running

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="HuntTrack API",
        description="Hunting session analytics from classified game-log events",
        version=__version__,
    )

    # CORS middleware for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    repo = Repository(db)
    if tracker is None:
        prefs = load_preferences()
        tracker = SessionTracker(repo, player_name=prefs.player_name)
        tracker.reload_markup()

    # Dependency overrides for repository/tracker injection
    def get_repository() -> Repository:
        return repo

    def get_tracker() -> SessionTracker:
        return tracker

    app.dependency_overrides[dependencies.get_repository] = get_repository
    app.dependency_overrides[dependencies.get_tracker] = get_tracker

    @app.middleware("http")
    async def poll_tracker(request: Request, call_next):
        # Due debounced saves land before each request is served
        tracker.poll()
        return await call_next(request)

    app.include_router(sessions.router)
    app.include_router(loadouts.router)
    app.include_router(markup.router)

    app.state.db = db
    app.state.repo = repo
    app.state.tracker = tracker
    app.state.events_path = events_path
    app.state.collector_running = collector_running

    @app.get("/api/status", response_model=StatusResponse, tags=["status"])
    def get_status() -> StatusResponse:
        """Get server status."""
        session = tracker.session
        save_error = tracker.last_save_error
        return StatusResponse(
            status="ok",
            version=__version__,
            collector_running=app.state.collector_running,
            db_path=str(db.db_path),
            events_path=str(events_path) if events_path else None,
            active_session_id=session.id if session and not session.is_ended else None,
            tracker_state=tracker.aggregate.state,
            last_save_error=str(save_error) if save_error else None,
            session_count=len(repo.list_sessions()),
            loadout_count=len(repo.list_loadouts()),
        )

    return app
