"""Thread-safe ingest counters and a once-per-period timer for rate reports."""

import threading
import time


class PeriodicTimer:
    """``due()`` returns True at most once per period."""

    def __init__(self, period: float):
        self._period = period
        self._t0 = time.monotonic()

    def due(self) -> bool:
        if time.monotonic() - self._t0 > self._period:
            self._t0 = time.monotonic()
            return True
        return False


class IngestStats:
    def __init__(self):
        self._lock = threading.Lock()
        self._lines = 0
        self._matched = 0
        self._blocks = 0
        self._window_lines = 0
        self._window_matched = 0
        self._window_start = time.monotonic()
        self._start_time = time.monotonic()

    def record(self, lines: int, matched: int):
        """Count a batch of read lines and how many matched a record type."""
        with self._lock:
            self._lines += lines
            self._matched += matched
            self._window_lines += lines
            self._window_matched += matched

    def record_block(self):
        with self._lock:
            self._blocks += 1

    def take_rates(self) -> tuple[float, float]:
        """Lines/s and matched/s since the previous call, then reset the window."""
        with self._lock:
            now = time.monotonic()
            elapsed = now - self._window_start
            lines, matched = self._window_lines, self._window_matched
            self._window_lines = self._window_matched = 0
            self._window_start = now
        if elapsed <= 0:
            return 0.0, 0.0
        return lines / elapsed, matched / elapsed

    def snapshot(self) -> dict:
        """Return a point-in-time snapshot of all counters."""
        with self._lock:
            elapsed = time.monotonic() - self._start_time
            lines, matched, blocks = self._lines, self._matched, self._blocks

        return {
            "lines_read": lines,
            "lines_matched": matched,
            "blocks": blocks,
            "elapsed_seconds": round(elapsed, 2),
            "lines_per_second": round(lines / elapsed, 2) if elapsed > 0 else 0.0,
        }
