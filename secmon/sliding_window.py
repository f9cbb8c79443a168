"""Time-ordered window of records.

Used by the event store (one global log plus one window per source
address) and the activity log.  Deque-based: O(1) append, amortized O(1)
eviction from the old end.  Records must be appended in timestamp order,
which holds because the monitor stamps them itself from one clock.

Two lookback flavours:
  * since(cutoff)       timestamp >= cutoff, for reporting ranges
  * newer_than(cutoff)  timestamp >  cutoff, for "within the last N seconds"

Not thread-safe; the owning store holds the lock.
"""

from collections import deque


class SlidingWindow:
    __slots__ = ("max_age", "_buf")

    def __init__(self, max_age_seconds: float):
        self.max_age = max_age_seconds
        self._buf: deque = deque()

    def add(self, timestamp: float, item) -> None:
        self._evict(timestamp - self.max_age)
        self._buf.append((timestamp, item))

    def since(self, cutoff: float) -> list:
        """Items with timestamp >= cutoff, oldest first."""
        return self._tail(lambda ts: ts >= cutoff)

    def newer_than(self, cutoff: float) -> list:
        """Items with timestamp > cutoff, oldest first."""
        return self._tail(lambda ts: ts > cutoff)

    def count_newer_than(self, cutoff: float) -> int:
        """How many items have timestamp > cutoff, without copying them.

        O(1) when the whole window is newer than cutoff, which is the usual
        case for a lookback as long as the window itself; otherwise walks
        from the newest end and stops at the first older item.
        """
        if not self._buf:
            return 0
        if self._buf[0][0] > cutoff:
            return len(self._buf)
        n = 0
        for ts, _ in reversed(self._buf):
            if ts <= cutoff:
                break
            n += 1
        return n

    def evict(self, cutoff: float) -> int:
        """Drop everything older than cutoff. Returns how many were dropped."""
        return self._evict(cutoff)

    def _tail(self, keep) -> list:
        # Walk from the newest end so the cost is bounded by the result size.
        out = []
        for ts, item in reversed(self._buf):
            if not keep(ts):
                break
            out.append(item)
        out.reverse()
        return out

    def _evict(self, cutoff: float) -> int:
        # Strict <: a record exactly at the cutoff stays.
        dropped = 0
        while self._buf and self._buf[0][0] < cutoff:
            self._buf.popleft()
            dropped += 1
        return dropped

    def __len__(self) -> int:
        return len(self._buf)
