"""Ingestion loop: tail the log, extract blocks, append them to the buffer."""

import logging
import os
import threading

from watchdog.events import FileSystemEventHandler

from logplot.extractor import Extractor
from logplot.retention import RetentionBuffer
from logplot.stats import IngestStats, PeriodicTimer
from logplot.tailer import FileTailer

logger = logging.getLogger(__name__)


class FileChangeNotifier(FileSystemEventHandler):
    """Wakes the ingest loop when the tailed file changes.

    Missed events only add latency; the loop still polls on its own.
    """

    def __init__(self, path: str, wake: threading.Event):
        super().__init__()
        self._path = os.path.abspath(path)
        self._wake = wake

    @property
    def watched_dir(self) -> str:
        return os.path.dirname(self._path)

    def _maybe_wake(self, event):
        if event.is_directory:
            return
        if os.path.abspath(event.src_path) == self._path:
            self._wake.set()

    def on_modified(self, event):
        self._maybe_wake(event)

    def on_created(self, event):
        self._maybe_wake(event)

    def on_moved(self, event):
        if not event.is_directory and os.path.abspath(event.dest_path) == self._path:
            self._wake.set()


class IngestLoop:
    def __init__(
        self,
        tailer: FileTailer,
        extractor: Extractor,
        buffer: RetentionBuffer,
        shutdown_event: threading.Event,
        poll_interval: float = 0.05,
        stats: IngestStats | None = None,
        stats_period: float = 5.0,
    ):
        self._tailer = tailer
        self._extractor = extractor
        self._buffer = buffer
        self._shutdown = shutdown_event
        self._poll_interval = poll_interval
        self._stats = stats or IngestStats()
        self._stats_timer = PeriodicTimer(stats_period)
        self.wake = threading.Event()

    @property
    def stats(self) -> IngestStats:
        return self._stats

    def run_once(self) -> bool:
        """Process one increment. Returns False when there was nothing to read."""
        lines = self._tailer.poll()
        if not lines:
            return False

        # Matching runs outside the buffer lock; only append takes it.
        block, matched = self._extractor.process(lines)
        if block is not None:
            self._buffer.append(block)
            self._stats.record_block()
        self._stats.record(len(lines), matched)
        return True

    def run(self):
        """Main ingest loop — blocks until shutdown_event is set."""
        logger.info("Ingesting %s", self._tailer.path)
        while not self._shutdown.is_set():
            if not self.run_once():
                self.wake.wait(self._poll_interval)
                self.wake.clear()

            if self._stats_timer.due():
                lines_per_sec, matched_per_sec = self._stats.take_rates()
                logger.info("%.1f lines per second\t%.1f matched per second",
                            lines_per_sec, matched_per_sec)
        logger.info("Ingest loop stopped")
