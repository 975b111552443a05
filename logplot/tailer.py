"""Incremental tailing of a single growing log file."""

import logging
import os

logger = logging.getLogger(__name__)

CHUNK_SIZE = 10 * 1024


class LineReader:
    """Splits appended bytes into complete lines.

    Bytes after the last newline are held back as the remainder until a
    later read completes the line. Lines keep their terminator.
    """

    def __init__(self, chunk_size: int = CHUNK_SIZE):
        self._chunk_size = chunk_size
        self._remainder = b""

    @property
    def remainder(self) -> bytes:
        return self._remainder

    def reset(self):
        self._remainder = b""

    def feed(self, data: bytes) -> list[str]:
        """Append *data* to the remainder and return the lines it completes."""
        if not data:
            return []
        content = self._remainder + data
        cut = content.rfind(b"\n") + 1
        self._remainder = content[cut:]
        if not cut:
            return []
        return [
            (line + b"\n").decode("utf-8", errors="replace")
            for line in content[:cut - 1].split(b"\n")
        ]

    def read_increment(self, fh) -> list[str]:
        """Read at most one chunk from *fh*. Returns [] when nothing new."""
        return self.feed(fh.read(self._chunk_size))


class FileTailer:
    """Owns the open handle of the tailed file.

    Handles:
    - Truncation in place (size shrinks): reopen at the new end
    - Rotation by rename (inode change): reopen the new file from the start
    """

    def __init__(self, path: str, from_beginning: bool = False, chunk_size: int = CHUNK_SIZE):
        self._path = path
        self._from_beginning = from_beginning
        self._reader = LineReader(chunk_size)
        self._file = None
        self._inode = None
        self._last_size = 0

    @property
    def path(self) -> str:
        return self._path

    def open(self):
        """Open the file at its end, or at offset 0 with from_beginning."""
        self._open(0 if self._from_beginning else None)

    def _open(self, offset: int | None):
        # The old handle stays usable if the new open fails.
        fh = open(self._path, "rb")
        self.close()
        self._file = fh
        stat = os.fstat(fh.fileno())
        self._inode = stat.st_ino
        self._last_size = stat.st_size
        if offset is None:
            fh.seek(0, os.SEEK_END)
        else:
            fh.seek(min(offset, stat.st_size))
        self._reader.reset()
        logger.debug("Opened %s at offset %d (inode=%d)", self._path, fh.tell(), self._inode)

    def close(self):
        if self._file:
            self._file.close()
            self._file = None

    def poll(self) -> list[str]:
        """Return the next batch of complete lines, possibly empty."""
        lines = self._reader.read_increment(self._file)
        if not lines:
            self._check_file()
        return lines

    def _check_file(self):
        try:
            stat = os.stat(self._path)
        except OSError:
            # Mid-rotation; the new file has not been created yet.
            return

        if stat.st_ino != self._inode:
            logger.info("File rotation detected for %s, reopening", self._path)
            self._reopen(0)
            return

        if stat.st_size < max(self._last_size, self._file.tell()):
            logger.info("File truncated (%d -> %d bytes). Resetting reader for %s",
                        self._last_size, stat.st_size, self._path)
            self._reopen(stat.st_size)
            return

        self._last_size = stat.st_size

    def _reopen(self, offset: int):
        """Reopen after rotation or truncation; on failure retry at the next poll."""
        try:
            self._open(offset)
        except OSError as e:
            logger.warning("Cannot reopen %s, will retry: %s", self._path, e)
