"""Tests for the session aggregate."""

import pytest

from hunttrack.core.clock import ManualClock
from hunttrack.core.fold import MANUAL_LOADOUT_KEY
from hunttrack.core.session import (
    LoadoutBook,
    SessionAggregate,
    SessionState,
    TrackingContext,
    session_duration,
    session_from_dict,
    session_to_dict,
)


@pytest.fixture
def book(rifle_loadout):
    """Loadout book with the rifle active."""
    return LoadoutBook([rifle_loadout], active_id=rifle_loadout.id)


@pytest.fixture
def ctx(book, clock):
    """Tracking context on a manual clock."""
    return TrackingContext(loadouts=book, clock=clock)


@pytest.fixture
def aggregate():
    return SessionAggregate()


class TestLifecycle:
    """Tests for the session state machine."""

    def test_idle_until_started(self, aggregate, ctx, make_event):
        assert aggregate.state == SessionState.IDLE
        assert aggregate.add_event(ctx, make_event("HIT", damage=10)) is False

    def test_start(self, aggregate, ctx, t0):
        session, previous = aggregate.start(ctx, name="Atrox run", tags=["atrox"])
        assert previous is None
        assert aggregate.state == SessionState.ACTIVE
        assert session.started_at == t0
        assert session.tags == ["atrox"]
        assert session.running_stats is not None

    def test_default_name(self, aggregate, ctx):
        session, _ = aggregate.start(ctx)
        assert session.name == "Session 2024-01-01 12:00"

    def test_start_finalizes_previous(self, aggregate, ctx, clock):
        first, _ = aggregate.start(ctx)
        clock.advance(60)
        second, previous = aggregate.start(ctx)
        assert previous is first
        assert first.ended_at == clock.now()
        assert aggregate.session is second

    def test_pause_and_unpause(self, aggregate, ctx, clock, make_event):
        aggregate.start(ctx)
        assert aggregate.pause(ctx) is True
        assert aggregate.pause(ctx) is False
        assert aggregate.state == SessionState.PAUSED
        assert aggregate.add_event(ctx, make_event("HIT", damage=10)) is False

        clock.advance(30)
        assert aggregate.unpause(ctx) is True
        assert aggregate.unpause(ctx) is False
        assert aggregate.session.total_paused_seconds == 30

    def test_stop(self, aggregate, ctx, make_event):
        aggregate.start(ctx)
        ended = aggregate.stop(ctx)
        assert ended.is_ended
        assert aggregate.state == SessionState.ENDED
        assert aggregate.state.value == "ended"
        assert isinstance(aggregate.state, SessionState)
        assert aggregate.stop(ctx) is None
        assert aggregate.add_event(ctx, make_event("HIT", damage=10)) is False
        assert aggregate.pause(ctx) is False

    def test_stop_closes_open_pause(self, aggregate, ctx, clock):
        aggregate.start(ctx)
        clock.advance(100)
        aggregate.pause(ctx)
        clock.advance(50)
        ended = aggregate.stop(ctx)
        assert ended.paused_at is None
        assert ended.total_paused_seconds == 50
        assert session_duration(ended, clock.advance(1000)) == 100

    def test_resume_reopens(self, aggregate, ctx, clock, make_event):
        old, _ = aggregate.start(ctx)
        aggregate.stop(ctx)
        current, _ = aggregate.start(ctx)

        resumed, previous = aggregate.resume(ctx, old)
        assert resumed is old
        assert previous is current
        assert current.is_ended
        assert old.ended_at is None
        assert aggregate.add_event(ctx, make_event("HIT", damage=5)) is True

    def test_resume_rebuilds_legacy_stats(self, aggregate, ctx, make_event):
        session, _ = aggregate.start(ctx)
        aggregate.add_event(ctx, make_event("HIT", damage=7))
        aggregate.stop(ctx)
        session.running_stats = None

        aggregate.resume(ctx, session)
        assert session.running_stats.damage_dealt == 7

    def test_update_expenses(self, aggregate, ctx):
        assert aggregate.update_expenses(armor=1.0) is False
        aggregate.start(ctx)
        assert aggregate.update_expenses(armor=1.5, misc=0.5) is True
        session = aggregate.session
        assert (session.manual_armor_cost, session.manual_fap_cost, session.manual_misc_cost) == (1.5, 0.0, 0.5)


class TestDuration:
    """Tests for pause-aware duration."""

    def test_single_pause(self, aggregate, ctx, clock):
        session, _ = aggregate.start(ctx)
        clock.advance(200)
        aggregate.pause(ctx)
        clock.advance(120)
        aggregate.unpause(ctx)
        clock.advance(280)
        assert session_duration(session, clock.now()) == 480

    def test_in_progress_pause_excluded(self, aggregate, ctx, clock):
        session, _ = aggregate.start(ctx)
        clock.advance(60)
        aggregate.pause(ctx)
        clock.advance(500)
        assert session_duration(session, clock.now()) == 60

    def test_never_negative(self, aggregate, ctx, t0):
        session, _ = aggregate.start(ctx)
        assert session_duration(session, t0.replace(hour=11)) == 0.0


class TestAddEvent:
    """Tests for recording and pricing events."""

    def test_hunt_literal(self, aggregate, ctx, make_event):
        aggregate.start(ctx)
        for i in range(100):
            assert aggregate.add_event(ctx, make_event("HIT", i, damage=10))
        aggregate.add_event(ctx, make_event("LOOT", 100, item="Animal Hide", value=5.0))

        stats = aggregate.session.running_stats
        assert stats.shots == 100
        assert stats.damage_dealt == 1000
        assert stats.kills == 1
        assert stats.loot_value == 5.0
        assert stats.total_spend == pytest.approx(100 * 0.21216)

    def test_shot_snapshot(self, aggregate, ctx, make_event):
        aggregate.start(ctx)
        aggregate.add_event(ctx, make_event("MISS"))
        recorded = aggregate.session.events[0]
        assert recorded.loadout_id == "rifle"
        assert recorded.cost_per_shot == pytest.approx(0.21216)
        assert aggregate.session.loadout_snapshots["rifle"].name == "Rifle"

    def test_non_shot_has_no_cost(self, aggregate, ctx, make_event):
        aggregate.start(ctx)
        aggregate.add_event(ctx, make_event("LOOT", value=1.0))
        assert aggregate.session.events[0].cost_per_shot is None

    def test_shot_without_loadout(self, aggregate, clock, make_event):
        ctx = TrackingContext(loadouts=LoadoutBook(), clock=clock)
        session, _ = aggregate.start(ctx)
        session.manual_cost_per_shot = 0.05
        aggregate.add_event(ctx, make_event("HIT", damage=3))
        assert session.running_stats.total_spend == pytest.approx(0.05)
        assert MANUAL_LOADOUT_KEY in session.running_stats.loadouts

    def test_loadout_swap_applies_to_next_shot(self, aggregate, ctx, book, make_event, rifle_loadout):
        aggregate.start(ctx)
        aggregate.add_event(ctx, make_event("HIT", 0, damage=3))
        book.set_active(None)
        aggregate.add_event(ctx, make_event("HIT", 1, damage=3))
        loadouts = aggregate.session.running_stats.loadouts
        assert loadouts["rifle"].shots == 1
        assert loadouts[MANUAL_LOADOUT_KEY].shots == 1

    def test_unknown_event_recorded_not_folded(self, aggregate, ctx, make_event):
        session, _ = aggregate.start(ctx)
        assert aggregate.add_event(ctx, make_event("TELEPORT"))
        assert session.event_count == 1
        assert session.running_stats.first_event_time is None

    def test_player_filter_from_context(self, aggregate, book):
        ctx = TrackingContext(loadouts=book, clock=ManualClock(), player_name="Hunter Joe")
        session, _ = aggregate.start(ctx)
        assert session.player_name == "Hunter Joe"


class TestSerialization:
    def test_round_trip(self, aggregate, ctx, clock, make_event):
        session, _ = aggregate.start(ctx, tags=["test"])
        aggregate.add_event(ctx, make_event("HIT", 1, damage=12))
        aggregate.add_event(ctx, make_event("LOOT", 2, item="Hide", value=0.5))
        clock.advance(10)
        aggregate.pause(ctx)

        restored = session_from_dict(session_to_dict(session))
        assert restored == session

    def test_legacy_record_without_running_stats(self, aggregate, ctx, make_event):
        session, _ = aggregate.start(ctx)
        aggregate.add_event(ctx, make_event("HIT", damage=12))
        record = session_to_dict(session)
        del record["running_stats"]
        assert session_from_dict(record).running_stats is None
