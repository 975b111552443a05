"""Thread-safe in-memory block history bounded by timestamp span."""

import collections
import logging
import threading

from logplot.models import Block

logger = logging.getLogger(__name__)


class RetentionBuffer:
    """Blocks in append order, oldest on the left.

    After every append, the oldest blocks are dropped until the span
    between newest and oldest ts is within max_duration. With no
    max_duration the history grows without bound.
    """

    def __init__(self, max_duration: float | None = None):
        self._blocks: collections.deque[Block] = collections.deque()
        self._max_duration = max_duration
        self._lock = threading.Lock()
        self._evicted_ts: float | None = None
        self._evicted_count = 0

    @property
    def max_duration(self) -> float | None:
        return self._max_duration

    def append(self, block: Block):
        """Add a block at the newest end and evict in the same critical section."""
        with self._lock:
            self._blocks.append(block)
            self._evict_locked()

    def evict(self) -> int:
        """Drop blocks outside the retention window. Returns how many were dropped."""
        with self._lock:
            return self._evict_locked()

    def _evict_locked(self) -> int:
        """Must be called with self._lock held."""
        if self._max_duration is None:
            return 0
        dropped = 0
        while len(self._blocks) > 1 and self._blocks[-1].ts - self._blocks[0].ts > self._max_duration:
            old = self._blocks.popleft()
            if self._evicted_ts is None or old.ts > self._evicted_ts:
                self._evicted_ts = old.ts
            dropped += 1
        if dropped:
            self._evicted_count += dropped
            logger.debug("Evicted %d block(s), %d retained", dropped, len(self._blocks))
        return dropped

    def snapshot_since(self, min_ts: float) -> list[Block]:
        """Return blocks with ts strictly greater than *min_ts*, oldest first."""
        with self._lock:
            return [b for b in self._blocks if b.ts > min_ts]

    def read_since(self, min_ts: float) -> tuple[list[Block], bool]:
        """Like snapshot_since, plus whether a block newer than *min_ts* was evicted."""
        with self._lock:
            blocks = [b for b in self._blocks if b.ts > min_ts]
            missed = self._evicted_ts is not None and self._evicted_ts > min_ts
            return blocks, missed

    def newest(self) -> Block | None:
        with self._lock:
            return self._blocks[-1] if self._blocks else None

    def oldest(self) -> Block | None:
        with self._lock:
            return self._blocks[0] if self._blocks else None

    @property
    def evicted_ts(self) -> float | None:
        """Largest ts of any block evicted so far."""
        with self._lock:
            return self._evicted_ts

    @property
    def evicted_count(self) -> int:
        return self._evicted_count

    def __len__(self) -> int:
        return len(self._blocks)
