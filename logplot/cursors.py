"""Per-consumer cursors: each poll returns only blocks the consumer has not seen."""

import logging
import math
import threading
import time
from dataclasses import dataclass, field

from logplot.models import Block
from logplot.retention import RetentionBuffer

logger = logging.getLogger(__name__)

UNKNOWN_CONSUMER = "unknown"


@dataclass
class Delivery:
    blocks: list[Block] = field(default_factory=list)
    gap: bool = False   # blocks this consumer never received were evicted


class _Cursor:
    __slots__ = ("last_ts", "last_seen", "polled", "lock")

    def __init__(self):
        # Below every timestamp, so the first block (relative ts 0.0) is delivered.
        self.last_ts = -math.inf
        self.last_seen = time.monotonic()
        self.polled = False
        self.lock = threading.Lock()


class CursorTracker:
    """Maps consumer id to the ts of the last block delivered to it.

    Delivery is best effort: a block evicted from the buffer before a
    lagging consumer polls again is lost to that consumer. The loss is
    reported through ``Delivery.gap`` rather than silently.
    """

    def __init__(self):
        self._cursors: dict[str, _Cursor] = {}
        self._lock = threading.Lock()

    def _get(self, consumer_id: str) -> _Cursor:
        with self._lock:
            cursor = self._cursors.get(consumer_id)
            if cursor is None:
                cursor = _Cursor()
                self._cursors[consumer_id] = cursor
                logger.info("New consumer '%s'", consumer_id)
            cursor.last_seen = time.monotonic()
            return cursor

    def deliver(self, consumer_id: str, buffer: RetentionBuffer) -> Delivery:
        """Return blocks newer than the consumer's cursor, oldest first, and advance it.

        Polls for the same consumer are serialized; different consumers
        proceed independently.
        """
        cursor = self._get(consumer_id)
        with cursor.lock:
            blocks, missed = buffer.read_since(cursor.last_ts)
            gap = missed and cursor.polled
            if gap:
                logger.info("Consumer '%s' fell behind the retention window", consumer_id)
            if blocks:
                cursor.last_ts = max(b.ts for b in blocks)
            cursor.polled = True

        with self._lock:
            # Reaped while this poll was in flight: keep the advanced cursor.
            if self._cursors.setdefault(consumer_id, cursor) is not cursor:
                logger.debug("Consumer '%s' re-registered during poll", consumer_id)
        return Delivery(blocks=blocks, gap=gap)

    def last_ts(self, consumer_id: str) -> float | None:
        """Cursor position for *consumer_id*, or None if it never polled."""
        with self._lock:
            cursor = self._cursors.get(consumer_id)
        return cursor.last_ts if cursor is not None else None

    def reap(self, max_idle: float) -> int:
        """Forget consumers that have not polled for more than *max_idle* seconds."""
        cutoff = time.monotonic() - max_idle
        with self._lock:
            stale = [cid for cid, c in self._cursors.items() if c.last_seen < cutoff]
            for cid in stale:
                del self._cursors[cid]
        if stale:
            logger.info("Reaped %d idle consumer(s)", len(stale))
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._cursors)
