"""Retention sweeper — periodic eviction of expired records.

Everything the monitor holds expires `time_window` seconds after its
relevant timestamp: events and activities by their own timestamp, attempt
records by first_attempt_at.  A pass takes each store's lock in turn, so
it runs alongside request-path reads and writes and costs time
proportional to what is stored, not to request rate.
"""

import logging
import threading
from dataclasses import dataclass

from secmon import metrics
from secmon.registry import AttemptRegistry
from secmon.store import ActivityLog, EventStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepResult:
    events: int = 0
    activities: int = 0
    address_records: int = 0
    account_records: int = 0

    @property
    def total(self) -> int:
        return self.events + self.activities + self.address_records + self.account_records


class RetentionSweeper:

    def __init__(self, events: EventStore, activities: ActivityLog,
                 address_registry: AttemptRegistry, account_registry: AttemptRegistry,
                 time_window: float, clock, interval: float = 60):
        self.events = events
        self.activities = activities
        self.address_registry = address_registry
        self.account_registry = account_registry
        self.time_window = time_window
        self.interval = interval
        self._clock = clock
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def sweep(self) -> SweepResult:
        cutoff = self._clock() - self.time_window
        result = SweepResult(
            events=self.events.evict(cutoff),
            activities=self.activities.evict(cutoff),
            address_records=self.address_registry.evict(cutoff),
            account_records=self.account_registry.evict(cutoff),
        )

        metrics.swept_total.labels("events").inc(result.events)
        metrics.swept_total.labels("activities").inc(result.activities)
        metrics.swept_total.labels("address_records").inc(result.address_records)
        metrics.swept_total.labels("account_records").inc(result.account_records)
        for registry in (self.address_registry, self.account_registry):
            metrics.tracked_keys.labels(registry.dimension.value).set(len(registry))

        if result.total:
            logger.debug("Retention sweep evicted %s", result)
        return result

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="secmon-sweeper",
                                        daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self):
        while not self._stop.wait(self.interval):
            try:
                self.sweep()
            except Exception:
                # Keep the thread alive; the next pass retries.
                logger.exception("Retention sweep failed")
