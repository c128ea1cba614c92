"""FastAPI dependency injection utilities.

Provides shared dependencies for API routes, configured by app factory.
"""

from hunttrack.db.repository import Repository
from hunttrack.tracker.session_tracker import SessionTracker


def get_repository() -> Repository:
    """Dependency injection for repository - set by app factory.

    This function is replaced by app.py's create_app() with an actual
    repository instance via dependency_overrides.

    Raises:
        NotImplementedError: If not configured (should never happen in production)
    """
    raise NotImplementedError("Repository not configured")


def get_tracker() -> SessionTracker:
    """Dependency injection for the session tracker - set by app factory.

    Raises:
        NotImplementedError: If not configured
    """
    raise NotImplementedError("Session tracker not configured")
