"""Feed tailer - reads JSON-lines as the game client appends them."""

from dataclasses import dataclass
from pathlib import Path
from typing import Generator, Optional

from hunttrack.config.logging import get_logger

logger = get_logger()

# Offsets beyond this come from a corrupted settings row
MAX_REASONABLE_OFFSET = 10_000_000_000


@dataclass(frozen=True)
class FeedPosition:
    """Where reading stopped in a feed file, saved for resume."""

    path: Path
    offset: int
    size: int


class FeedTailer:
    """
    Follows a growing event feed.

    Only complete lines are yielded; a trailing fragment waits for its
    newline. A file that shrinks below the read offset was replaced, and
    reading restarts from its beginning.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._offset = 0
        self._size = 0
        self._fragment = b""

    @property
    def position(self) -> FeedPosition:
        return FeedPosition(self.path, self._offset, self._size)

    def _current_size(self) -> Optional[int]:
        try:
            return self.path.stat().st_size
        except OSError:
            return None

    def exists(self) -> bool:
        return self.path.is_file()

    def restore(self, saved: FeedPosition) -> bool:
        """
        Continue from a saved position.

        Args:
            saved: Position recorded by an earlier run

        Returns:
            True if reading continues at the saved offset, False if it
            restarts (other file, file replaced, or a bad offset)
        """
        size = self._current_size()
        self._fragment = b""
        if saved.path != self.path or size is None:
            self._offset, self._size = 0, size or 0
            return False
        if saved.offset < 0 or saved.offset > MAX_REASONABLE_OFFSET:
            logger.warning(f"Ignoring bad feed offset {saved.offset} for {self.path}")
            self._offset, self._size = 0, size
            return False
        if size < saved.size or saved.offset > size:
            logger.info(f"Feed {self.path} was replaced, reading from the start")
            self._offset, self._size = 0, size
            return False
        self._offset, self._size = saved.offset, saved.size
        return True

    def skip_existing(self) -> None:
        """Jump to the end so only records appended from now on are read."""
        size = self._current_size()
        if size is not None:
            self._offset = self._size = size
        self._fragment = b""

    def rewind(self) -> None:
        self._offset = self._size = 0
        self._fragment = b""

    def read_lines(self) -> Generator[str, None, None]:
        """
        Yield the complete lines appended since the last read.

        Yields:
            Lines without their line ending
        """
        size = self._current_size()
        if size is None:
            return
        if size < self._offset:
            logger.info(f"Feed {self.path} shrank, reading from the start")
            self.rewind()
        if size == self._offset:
            return

        try:
            with self.path.open("rb") as f:
                f.seek(self._offset)
                data = f.read(size - self._offset)
        except OSError as e:
            logger.warning(f"Could not read {self.path}: {e}")
            return

        self._offset += len(data)
        self._size = size
        *complete, self._fragment = (self._fragment + data).split(b"\n")
        for raw in complete:
            yield raw.rstrip(b"\r").decode("utf-8", errors="replace")

    def read_from_start(self) -> Generator[str, None, None]:
        self.rewind()
        yield from self.read_lines()
