"""
Per-subject one-minute admission gate.

Each subject owns a ``(window_start, count)`` bucket. Updates are
serialised per subject through a fixed set of striped locks, so callers
for different subjects rarely contend and no single lock guards every
bucket.
"""

from __future__ import annotations

import threading
import time
import zlib
from collections.abc import Callable
from dataclasses import dataclass

WINDOW_SECONDS = 60.0


@dataclass(frozen=True)
class _Bucket:
    window_start: float
    count: int


class RateLimiter:
    """Fixed one-minute window counter keyed by subject id."""

    def __init__(self, clock: Callable[[], float] = time.monotonic, stripes: int = 64):
        self._clock = clock
        self._buckets: dict[str, _Bucket] = {}
        self._locks = [threading.Lock() for _ in range(max(1, stripes))]

    def _lock_for(self, subject_id: str) -> threading.Lock:
        return self._locks[zlib.crc32(subject_id.encode()) % len(self._locks)]

    def admit(self, subject_id: str, limit_per_minute: int) -> bool:
        """Count one request and report whether it fits in the current window."""
        if limit_per_minute <= 0:
            return False

        now = self._clock()
        with self._lock_for(subject_id):
            bucket = self._buckets.get(subject_id)
            if bucket is None or now - bucket.window_start >= WINDOW_SECONDS:
                bucket = _Bucket(window_start=now, count=1)
            else:
                bucket = _Bucket(window_start=bucket.window_start, count=bucket.count + 1)
            self._buckets[subject_id] = bucket

        return bucket.count <= limit_per_minute

    def evict_stale(self) -> int:
        """Drop buckets whose window has fully elapsed. Returns how many."""
        now = self._clock()
        removed = 0
        for subject_id in list(self._buckets):
            with self._lock_for(subject_id):
                bucket = self._buckets.get(subject_id)
                if bucket is not None and now - bucket.window_start >= WINDOW_SECONDS:
                    del self._buckets[subject_id]
                    removed += 1
        return removed

    def __len__(self) -> int:
        return len(self._buckets)
