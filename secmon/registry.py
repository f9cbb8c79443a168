"""Failure counters per tracking dimension (source address, account).

One AttemptRegistry per dimension; keys in different dimensions never
collide.  A record is logically expired once `now - first_attempt_at >=
time_window`, even if the sweeper has not physically removed it yet, so
the next failure on an expired key starts a fresh count.
"""

import enum
import logging
import threading
from dataclasses import dataclass, replace

logger = logging.getLogger(__name__)


class Dimension(str, enum.Enum):
    ADDRESS = "address"
    ACCOUNT = "account"


@dataclass
class AttemptRecord:
    key: str
    count: int
    first_attempt_at: float
    last_attempt_at: float


class AttemptRegistry:

    def __init__(self, dimension: Dimension, time_window: float):
        self.dimension = dimension
        self.time_window = time_window
        self._records: dict[str, AttemptRecord] = {}
        self._lock = threading.Lock()

    def record_failure(self, key: str, now: float) -> AttemptRecord:
        """Count one failure for *key*. Returns a snapshot of the updated record."""
        with self._lock:
            rec = self._records.get(key)
            if rec is None or now - rec.first_attempt_at >= self.time_window:
                rec = AttemptRecord(key=key, count=0,
                                    first_attempt_at=now, last_attempt_at=now)
                self._records[key] = rec
            rec.count += 1
            rec.last_attempt_at = now
            return replace(rec)

    def get(self, key: str) -> AttemptRecord | None:
        with self._lock:
            rec = self._records.get(key)
            return replace(rec) if rec is not None else None

    def reset(self, key: str) -> bool:
        """Forget *key*. Returns whether anything was there; absent keys are fine."""
        with self._lock:
            removed = self._records.pop(key, None) is not None
        if removed:
            logger.info("%s attempts reset for %s", self.dimension.value, key)
        return removed

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._records)

    def evict(self, cutoff: float) -> int:
        """Drop records first seen before *cutoff*."""
        with self._lock:
            stale = [k for k, rec in self._records.items()
                     if rec.first_attempt_at < cutoff]
            for k in stale:
                del self._records[k]
            return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
