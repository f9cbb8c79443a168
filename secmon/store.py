"""Bounded-retention stores for security events and flagged activities.

Each store guards its own collection with one lock.  Readers get list
copies, so nothing outside the lock ever iterates live state.
"""

import threading

from secmon.events import SecurityEvent, SuspiciousActivity
from secmon.sliding_window import SlidingWindow


class EventStore:
    """Append-only event log, indexed by source address.

    The global log serves reporting; the per-address windows serve the
    analyzer, so a per-request query only touches that address's events.
    """

    def __init__(self, retention_seconds: float):
        self.retention = retention_seconds
        self._lock = threading.Lock()
        self._log = SlidingWindow(retention_seconds)
        self._by_address: dict[str, SlidingWindow] = {}

    def append(self, event: SecurityEvent) -> None:
        with self._lock:
            self._log.add(event.timestamp, event)
            window = self._by_address.get(event.source_address)
            if window is None:
                window = SlidingWindow(self.retention)
                self._by_address[event.source_address] = window
            window.add(event.timestamp, event)

    def for_address(self, address: str, cutoff: float) -> list[SecurityEvent]:
        """Events from *address* newer than cutoff."""
        with self._lock:
            window = self._by_address.get(address)
            return window.newer_than(cutoff) if window is not None else []

    def count_for_address(self, address: str, cutoff: float) -> int:
        """Number of events from *address* newer than cutoff; copies nothing."""
        with self._lock:
            window = self._by_address.get(address)
            return window.count_newer_than(cutoff) if window is not None else 0

    def since(self, cutoff: float) -> list[SecurityEvent]:
        with self._lock:
            return self._log.since(cutoff)

    def evict(self, cutoff: float) -> int:
        with self._lock:
            dropped = self._log.evict(cutoff)
            empty = []
            for address, window in self._by_address.items():
                window.evict(cutoff)
                if not window:
                    empty.append(address)
            for address in empty:
                del self._by_address[address]
            return dropped

    def __len__(self) -> int:
        with self._lock:
            return len(self._log)


class ActivityLog:
    """Flagged suspicious activities within the retention window."""

    def __init__(self, retention_seconds: float):
        self._lock = threading.Lock()
        self._log = SlidingWindow(retention_seconds)

    def append(self, activity: SuspiciousActivity) -> None:
        with self._lock:
            self._log.add(activity.timestamp, activity)

    def since(self, cutoff: float) -> list[SuspiciousActivity]:
        with self._lock:
            return self._log.since(cutoff)

    def evict(self, cutoff: float) -> int:
        with self._lock:
            return self._log.evict(cutoff)

    def __len__(self) -> int:
        with self._lock:
            return len(self._log)
