"""Tests for the feed tailer."""

from pathlib import Path

import pytest

from hunttrack.parser.feed_tailer import FeedPosition, FeedTailer

HIT = '{"timestamp": "2024-01-01T12:00:00", "type": "HIT", "data": {"damage": 10}}'
MISS = '{"timestamp": "2024-01-01T12:00:01", "type": "MISS"}'
LOOT = '{"timestamp": "2024-01-01T12:00:02", "type": "LOOT", "data": {"item": "Hide", "value": 1.5}}'


@pytest.fixture
def feed(tmp_path):
    """Feed file with three records."""
    path = tmp_path / "events.jsonl"
    path.write_text(f"{HIT}\n{MISS}\n{LOOT}\n", encoding="utf-8")
    return path


def _append(path: Path, text: str) -> None:
    with open(path, "a", encoding="utf-8") as f:
        f.write(text)


class TestReading:
    """Tests for incremental reads."""

    def test_read_from_start(self, feed):
        tailer = FeedTailer(feed)
        assert list(tailer.read_from_start()) == [HIT, MISS, LOOT]
        assert tailer.position == FeedPosition(feed, feed.stat().st_size, feed.stat().st_size)

    def test_only_new_lines(self, feed):
        tailer = FeedTailer(feed)
        list(tailer.read_lines())

        _append(feed, f"{HIT}\n")
        assert list(tailer.read_lines()) == [HIT]
        assert list(tailer.read_lines()) == []

    def test_fragment_waits_for_newline(self, feed):
        tailer = FeedTailer(feed)
        list(tailer.read_lines())

        _append(feed, HIT[:20])
        assert list(tailer.read_lines()) == []

        _append(feed, HIT[20:] + "\n")
        assert list(tailer.read_lines()) == [HIT]

    def test_multibyte_character_split_across_reads(self, tmp_path):
        path = tmp_path / "events.jsonl"
        encoded = '{"type": "LOOT", "data": {"item": "Épée"}}\n'.encode("utf-8")
        split = encoded.index("É".encode("utf-8")) + 1
        path.write_bytes(encoded[:split])

        tailer = FeedTailer(path)
        assert list(tailer.read_lines()) == []
        with open(path, "ab") as f:
            f.write(encoded[split:])
        assert list(tailer.read_lines()) == ['{"type": "LOOT", "data": {"item": "Épée"}}']

    def test_crlf_stripped(self, tmp_path):
        path = tmp_path / "events.jsonl"
        path.write_bytes(f"{MISS}\r\n".encode("utf-8"))
        assert list(FeedTailer(path).read_lines()) == [MISS]

    def test_replaced_file_read_from_start(self, feed):
        tailer = FeedTailer(feed)
        list(tailer.read_lines())

        feed.write_text(f"{MISS}\n", encoding="utf-8")
        assert list(tailer.read_lines()) == [MISS]

    def test_skip_existing(self, feed):
        tailer = FeedTailer(feed)
        tailer.skip_existing()
        assert list(tailer.read_lines()) == []

        _append(feed, f"{HIT}\n")
        assert list(tailer.read_lines()) == [HIT]

    def test_missing_file(self, tmp_path):
        tailer = FeedTailer(tmp_path / "missing.jsonl")
        assert list(tailer.read_lines()) == []
        assert not tailer.exists()

    def test_file_created_later(self, tmp_path):
        path = tmp_path / "late.jsonl"
        tailer = FeedTailer(path)
        assert list(tailer.read_lines()) == []

        path.write_text(f"{LOOT}\n", encoding="utf-8")
        assert list(tailer.read_lines()) == [LOOT]


class TestRestore:
    """Tests for resuming from a saved position."""

    def test_continues_at_saved_offset(self, feed):
        first = FeedTailer(feed)
        list(first.read_lines())

        second = FeedTailer(feed)
        assert second.restore(first.position)
        _append(feed, f"{LOOT}\n")
        assert list(second.read_lines()) == [LOOT]

    def test_offset_past_end(self, feed):
        tailer = FeedTailer(feed)
        assert not tailer.restore(FeedPosition(feed, 99999, 100000))
        assert tailer.position.offset == 0
        assert HIT in list(tailer.read_lines())

    def test_negative_offset(self, feed):
        tailer = FeedTailer(feed)
        assert not tailer.restore(FeedPosition(feed, -5, 0))
        assert tailer.position.offset == 0

    def test_other_file(self, feed, tmp_path):
        tailer = FeedTailer(feed)
        assert not tailer.restore(FeedPosition(tmp_path / "old.jsonl", 10, 10))
        assert tailer.position.offset == 0
