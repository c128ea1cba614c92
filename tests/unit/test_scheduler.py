"""Tests for the debounce and throttle disciplines."""

import pytest

from hunttrack.core.clock import ManualClock, active_seconds
from hunttrack.core.scheduler import DebouncedWriter, Throttle


class TestDebouncedWriter:
    """Tests for write coalescing."""

    @pytest.fixture
    def written(self):
        return []

    @pytest.fixture
    def writer(self, written, clock):
        return DebouncedWriter(written.append, delay=0.5, clock=clock)

    def test_only_latest_written(self, writer, written, clock):
        writer.request("a")
        writer.request("b")
        assert writer.poll() is False
        clock.advance(0.5)
        assert writer.poll() is True
        assert written == ["b"]
        assert not writer.pending

    def test_new_request_restarts_delay(self, writer, written, clock):
        writer.request("a")
        clock.advance(0.4)
        writer.request("b")
        clock.advance(0.4)
        assert writer.poll() is False
        clock.advance(0.1)
        assert writer.poll() is True
        assert written == ["b"]

    def test_flush_writes_now(self, writer, written):
        writer.request("a")
        assert writer.flush() is True
        assert written == ["a"]
        assert writer.flush() is False

    def test_cancel(self, writer, written, clock):
        writer.request("a")
        writer.cancel()
        clock.advance(1)
        assert writer.poll() is False
        assert written == []

    def test_failed_write_stays_pending(self, clock):
        calls = []

        def failing(payload):
            calls.append(payload)
            if len(calls) == 1:
                raise OSError("disk full")

        writer = DebouncedWriter(failing, delay=0.5, clock=clock)
        writer.request("state")
        assert writer.flush() is False
        assert writer.pending
        assert isinstance(writer.last_error, OSError)

        clock.advance(0.5)
        assert writer.poll() is True
        assert calls == ["state", "state"]
        assert writer.last_error is None

    def test_keyed_writes_keep_request_order(self, clock):
        written = []
        locked = {"first"}

        def write(record):
            if record[0] in locked:
                raise OSError("database is locked")
            written.append(record)

        writer = DebouncedWriter(write, delay=0.5, clock=clock, key=lambda record: record[0])
        writer.request(("first", 1))
        writer.request(("second", 1))
        writer.request(("first", 2))

        # A failure blocks everything queued behind it
        assert writer.flush() is False
        assert written == []

        locked.clear()
        assert writer.flush() is True
        assert written == [("first", 2), ("second", 1)]

    def test_cancel_one_key(self, clock):
        written = []
        writer = DebouncedWriter(written.append, delay=0.5, clock=clock, key=lambda record: record[0])
        writer.request(("first", 1))
        writer.request(("second", 1))
        writer.cancel(("first", 9))
        writer.flush()
        assert written == [("second", 1)]


class TestThrottle:
    """Tests for rate-limited recomputation."""

    @pytest.fixture
    def counter(self):
        return {"n": 0}

    @pytest.fixture
    def throttle(self, counter, clock):
        def compute():
            counter["n"] += 1
            return counter["n"]

        return Throttle(compute, interval=0.5, clock=clock)

    def test_first_request_runs(self, throttle):
        assert throttle.request() == 1

    def test_requests_inside_window_coalesce(self, throttle, clock):
        throttle.request()
        clock.advance(0.2)
        assert throttle.request() == 1
        assert throttle.request() == 1
        assert throttle.pending

        clock.advance(0.2)
        assert throttle.poll() == 1
        clock.advance(0.2)
        assert throttle.poll() == 2
        assert throttle.run_count == 2
        assert not throttle.pending

    def test_request_after_window_runs(self, throttle, clock):
        throttle.request()
        clock.advance(0.6)
        assert throttle.request() == 2

    def test_reset(self, throttle, clock):
        throttle.request()
        throttle.reset()
        assert throttle.last_result is None
        assert throttle.request() == 2


class TestActiveSeconds:
    def test_ended_session_ignores_now(self, t0):
        clock = ManualClock(t0)
        end = clock.advance(100)
        later = clock.advance(1000)
        assert active_seconds(t0, later, ended_at=end, total_paused_seconds=30) == 70
