"""Pytest configuration and shared fixtures."""

import os
import tempfile
from datetime import datetime, timedelta

import pytest

# Keep logs and preferences out of the user's data directory
os.environ.setdefault("HUNTTRACK_DATA_DIR", tempfile.mkdtemp(prefix="hunttrack-tests-"))

from hunttrack.core.clock import ManualClock  # noqa: E402
from hunttrack.core.events import event_from_log  # noqa: E402
from hunttrack.core.loadout import Loadout, create_equipment  # noqa: E402
from hunttrack.db.connection import Database  # noqa: E402
from hunttrack.db.repository import Repository  # noqa: E402
from hunttrack.tracker.session_tracker import SessionTracker  # noqa: E402

T0 = datetime(2024, 1, 1, 12, 0, 0)


@pytest.fixture
def t0():
    """Fixed reference time."""
    return T0


@pytest.fixture
def clock():
    """Deterministic clock starting at T0."""
    return ManualClock(T0)


@pytest.fixture
def db(tmp_path):
    """Create a temporary database."""
    database = Database(tmp_path / "test.db")
    database.connect()
    yield database
    database.close()


@pytest.fixture
def repo(db):
    """Create a repository."""
    return Repository(db)


@pytest.fixture
def tracker(repo, clock):
    """Session tracker on a temporary database and a manual clock."""
    return SessionTracker(repo, clock=clock)


@pytest.fixture
def rifle_loadout():
    """Loadout costing exactly 0.21216 PED per shot."""
    return Loadout(
        id="rifle",
        name="Rifle",
        weapon=create_equipment("Test Rifle", decay=0.2016, ammo_burn=105.6),
    )


@pytest.fixture
def make_event():
    """Factory for events offset in seconds from T0."""

    def _make(event_type: str, offset: float = 0.0, **data):
        return event_from_log(event_type, T0 + timedelta(seconds=offset), data)

    return _make
