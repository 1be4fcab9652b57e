"""Append-only log file store and the in-memory overflow buffer."""

import logging
import os

from debuglog.errors import FileIOError

logger = logging.getLogger(__name__)


class LogStore:
    """The on-disk log: one serialized entry per line, UTF-8."""

    def __init__(self, path: str):
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    def exists(self) -> bool:
        return os.path.exists(self._path)

    def size_kb(self) -> float:
        """Current file size in kilobytes; 0 when the file is absent."""
        try:
            return os.path.getsize(self._path) / 1024
        except FileNotFoundError:
            return 0.0
        except OSError as e:
            raise FileIOError(f"Could not get attributes of {self._path}: {e}") from e

    def append(self, line: str):
        """Append a line, creating the file (and its directory) if needed."""
        if not line.endswith("\n"):
            line += "\n"
        try:
            os.makedirs(os.path.dirname(self._path) or ".", exist_ok=True)
            with open(self._path, "a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            raise FileIOError(f"Error appending to {self._path}: {e}") from e

    def read_all(self) -> list[str]:
        """Return every entry in file order.

        Splits on newlines and drops the final element, which is the empty
        segment after the terminating newline.
        """
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise FileIOError(f"Could not read {self._path}: {e}") from e
        entries = data.split("\n")
        entries.pop()
        return entries

    def rewrite(self, lines: list[str]):
        """Atomically replace the file contents with ``lines``."""
        tmp_path = self._path + ".tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.writelines(line + "\n" for line in lines)
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise FileIOError(f"Could not rewrite {self._path}: {e}") from e

    def delete(self) -> bool:
        """Remove the file. Returns False if it did not exist."""
        try:
            os.remove(self._path)
        except FileNotFoundError:
            return False
        except OSError as e:
            raise FileIOError(f"Could not delete {self._path}: {e}") from e
        logger.debug("Deleted %s", self._path)
        return True


class OverflowBuffer:
    """Entries recorded while an upload is in flight.

    Bounded by dropping everything once the counter passes ``cap``; entries
    are lost, not evicted oldest-first.
    """

    def __init__(self, cap: int = 2000):
        self._cap = cap
        self._entries: list[str] = []
        self._counter = 0

    @property
    def cap(self) -> int:
        return self._cap

    @property
    def counter(self) -> int:
        return self._counter

    @property
    def entries(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, line: str) -> bool:
        """Buffer a line. Returns False if this append overflowed and emptied the buffer."""
        self._counter += 1
        self._entries.append(line)
        if self._counter > self._cap:
            self.clear()
            return False
        return True

    def drain(self) -> list[str]:
        entries = self._entries
        self._entries = []
        self._counter = 0
        return entries

    def clear(self):
        self._entries = []
        self._counter = 0
