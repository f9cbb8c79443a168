"""Alert dispatch for high-severity activities.

Handlers run on a background worker fed by a bounded queue, so a slow
notification transport never holds up the request that flagged the
activity.  Every handler is called independently: one raising does not
stop the rest, and nothing propagates back to the caller.
"""

import logging
import queue
import threading
from typing import Callable, Protocol, runtime_checkable

from secmon import metrics
from secmon.events import SuspiciousActivity
from secmon.severity import HIGH

logger = logging.getLogger(__name__)

_STOP = object()


@runtime_checkable
class AlertHandler(Protocol):
    def handle(self, activity: SuspiciousActivity) -> None: ...


class FunctionHandler:
    """Adapts a plain callable to the AlertHandler interface."""

    def __init__(self, fn: Callable[[SuspiciousActivity], None]):
        self.fn = fn

    def handle(self, activity):
        self.fn(activity)

    def __repr__(self):
        return f"FunctionHandler({getattr(self.fn, '__name__', self.fn)!r})"


class AlertDispatcher:

    def __init__(self, queue_size: int = 1000):
        self._handlers: list[AlertHandler] = []
        self._handlers_lock = threading.Lock()
        self._queue: queue.Queue = queue.Queue(maxsize=queue_size)
        self._worker: threading.Thread | None = None
        self._worker_lock = threading.Lock()

    def register_handler(self, handler) -> AlertHandler:
        if not isinstance(handler, AlertHandler):
            if not callable(handler):
                raise TypeError(f"alert handler must define handle() or be callable: {handler!r}")
            handler = FunctionHandler(handler)
        with self._handlers_lock:
            self._handlers.append(handler)
        return handler

    @property
    def handlers(self) -> list[AlertHandler]:
        with self._handlers_lock:
            return list(self._handlers)

    def dispatch(self, activity: SuspiciousActivity) -> bool:
        """Queue *activity* for the handlers if it is high severity.

        Returns True when the alert was queued. Never blocks.
        """
        if activity.severity != HIGH:
            return False
        logger.error("HIGH SEVERITY SECURITY ALERT type=%s ip=%s user=%s details=%s",
                     activity.activity_type, activity.source_address,
                     activity.account_id, dict(activity.details))
        self._ensure_worker()
        try:
            self._queue.put_nowait(activity)
        except queue.Full:
            metrics.alerts_dropped_total.inc()
            logger.warning("Alert queue full, dropping %s alert for %s",
                           activity.activity_type, activity.source_address)
            return False
        return True

    def deliver(self, activity: SuspiciousActivity) -> None:
        """Run every handler for one activity, isolating failures."""
        metrics.alerts_dispatched_total.inc()
        for handler in self.handlers:
            try:
                handler.handle(activity)
            except Exception:
                metrics.alert_handler_errors_total.inc()
                logger.exception("Security alert handler %r failed", handler)

    def drain(self, timeout: float | None = None) -> bool:
        """Wait until every queued alert has been delivered.

        Returns False if *timeout* expired first.
        """
        q = self._queue
        with q.all_tasks_done:
            return q.all_tasks_done.wait_for(lambda: q.unfinished_tasks == 0, timeout)

    def close(self, timeout: float | None = 5.0) -> None:
        """Stop the worker after it finishes what is queued.

        Gives up after *timeout* seconds if the queue stays full or a handler
        hangs; the worker is a daemon thread and dies with the process.
        """
        with self._worker_lock:
            worker, self._worker = self._worker, None
        if worker is None:
            return
        try:
            self._queue.put(_STOP, timeout=timeout)
        except queue.Full:
            logger.warning("Alert queue still full after %ss, abandoning worker "
                           "with %d alerts pending", timeout, self._queue.qsize())
            return
        worker.join(timeout)
        if worker.is_alive():
            logger.warning("Alert worker did not stop within %ss", timeout)

    def _ensure_worker(self):
        with self._worker_lock:
            if self._worker is None or not self._worker.is_alive():
                self._worker = threading.Thread(
                    target=self._run, name="secmon-alerts", daemon=True
                )
                self._worker.start()

    def _run(self):
        while True:
            activity = self._queue.get()
            try:
                if activity is _STOP:
                    return
                self.deliver(activity)
            finally:
                self._queue.task_done()
