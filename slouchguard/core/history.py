"""
History Buffer for SlouchGuard.

Keeps a short, time-windowed record of posture metrics so the classifier can
compare the current sample against the user's own recent average instead of
a calibrated baseline ("rolling" mode).

Rules:
    - Entries arrive in chronological order and are never mutated.
    - After every append, entries older than retention_ms relative to the
      newest timestamp are evicted from the left of the deque.
    - average_before(cutoff) only looks at entries strictly older than cutoff.
      In rolling mode the caller queries it with (now - retention_ms) BEFORE
      appending the current sample, which yields the "2.5 seconds ago" average.
"""

from __future__ import annotations

import collections
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class HistoryEntry:
    timestamp_ms: int
    metric: float


class HistoryBuffer:
    """Time-windowed deque of (timestamp, metric) pairs."""

    def __init__(self, retention_ms: int = 2500):
        if retention_ms <= 0:
            raise ValueError("retention_ms must be > 0")
        self.retention_ms = retention_ms
        self._entries: collections.deque[HistoryEntry] = collections.deque()

    def append(self, timestamp_ms: int, metric: float) -> None:
        self._entries.append(HistoryEntry(timestamp_ms, float(metric)))
        self._evict(timestamp_ms)

    def average_before(self, cutoff_ms: int) -> Optional[float]:
        total = 0.0
        count = 0
        for entry in self._entries:
            if entry.timestamp_ms >= cutoff_ms:
                break  # chronological order
            total += entry.metric
            count += 1
        if count == 0:
            return None
        return total / count

    def clear(self) -> None:
        self._entries.clear()

    def entries(self) -> List[HistoryEntry]:
        return list(self._entries)

    def _evict(self, now_ms: int) -> None:
        horizon = now_ms - self.retention_ms
        while self._entries and self._entries[0].timestamp_ms < horizon:
            self._entries.popleft()

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"HistoryBuffer(retention_ms={self.retention_ms}, entries={len(self._entries)})"
