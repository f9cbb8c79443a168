"""Security monitor — the engine request handlers talk to.

One instance per process, constructed at startup and injected into the
request layer.  It owns every store; nothing else writes to them.

Flow for one recorded event:
    event store + attempt registry updated
      -> analyzer looks at recent same-address events
      -> severity classifier scores each finding
      -> dispatcher queues high-severity alerts for the handlers
All of it runs in memory on the caller's thread; only alert handlers run
elsewhere.
"""

import logging
import time
from typing import NamedTuple

from secmon import metrics
from secmon.alerts import AlertDispatcher
from secmon.analyzer import SuspicionAnalyzer
from secmon.blocking import BlockingDecisionService
from secmon.config import Settings, Thresholds
from secmon.events import (
    FAILED_AUTHENTICATION, SUSPICIOUS_ORDER, UNAUTHORIZED_ACCESS,
    RequestContext, SecurityEvent, SuspiciousActivity,
)
from secmon.registry import AttemptRecord, AttemptRegistry, Dimension
from secmon.reporting import build_report, range_seconds
from secmon.rules import default_rules
from secmon.severity import (
    EXCESSIVE_FAILED_ATTEMPTS, ORDER_FREQUENCY_ABUSE, PRIVILEGE_ESCALATION_ATTEMPT,
    classify,
)
from secmon.store import ActivityLog, EventStore
from secmon.sweeper import RetentionSweeper, SweepResult

logger = logging.getLogger(__name__)

EXCESSIVE_ORDER_FREQUENCY = "excessive_order_frequency"


class FailureCounts(NamedTuple):
    """Attempt records after one failed authentication."""
    address: AttemptRecord
    account: AttemptRecord | None


class SecurityMonitor:

    def __init__(self, settings: Settings | Thresholds, *, clock=time.time,
                 dispatcher: AlertDispatcher | None = None, rules=None):
        if isinstance(settings, Thresholds):
            settings = Settings(thresholds=settings)
        self.settings = settings
        self.thresholds = settings.thresholds
        self.clock = clock

        window = self.thresholds.time_window
        self.events = EventStore(window)
        self.activities = ActivityLog(window)
        self.registries = {
            Dimension.ADDRESS: AttemptRegistry(Dimension.ADDRESS, window),
            Dimension.ACCOUNT: AttemptRegistry(Dimension.ACCOUNT, window),
        }
        self.blocking = BlockingDecisionService(self.thresholds, self.registries, clock)
        self.analyzer = SuspicionAnalyzer(
            self.events,
            rules if rules is not None else default_rules(settings.analysis, self.thresholds),
        )
        self.dispatcher = dispatcher or AlertDispatcher(settings.alert_queue_size)
        self.sweeper = RetentionSweeper(
            self.events, self.activities,
            self.registries[Dimension.ADDRESS], self.registries[Dimension.ACCOUNT],
            window, clock, interval=settings.sweep_interval,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the periodic retention sweep."""
        self.sweeper.start()

    def stop(self) -> None:
        self.sweeper.stop()
        self.dispatcher.close()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc):
        self.stop()

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_event(self, event_type: str, context: RequestContext,
                     details: dict | None = None) -> SecurityEvent:
        """Append an event and immediately run the analyzer on it."""
        event = SecurityEvent.from_context(self.clock(), event_type, context, details)
        self.events.append(event)
        metrics.events_total.labels(event_type).inc()
        logger.info("Security event recorded type=%s ip=%s user=%s endpoint=%s %s",
                    event_type, event.source_address, event.account_id,
                    event.http_method, event.endpoint)

        for finding in self.analyzer.analyze(event):
            self.flag_suspicious_activity(
                event.source_address, finding.activity_type, finding.details,
                account_id=event.account_id,
            )
        return event

    def record_failed_auth(self, context: RequestContext, reason: str,
                           identifier: str | None = None) -> FailureCounts:
        """Count a failed login against the address and the attempted account.

        *identifier* is whatever the client tried to log in as (phone, email,
        username); without one only the address is counted.
        """
        now = self.clock()
        account_key = identifier or context.account_id
        ip_rec = self.registries[Dimension.ADDRESS].record_failure(context.source_address, now)
        user_rec = None
        if account_key is not None:
            user_rec = self.registries[Dimension.ACCOUNT].record_failure(account_key, now)

        self.record_event(FAILED_AUTHENTICATION, context, {
            "reason": reason,
            "identifier": account_key,
            "ip_attempt_count": ip_rec.count,
            "user_attempt_count": user_rec.count if user_rec else None,
        })

        limit = self.thresholds.max_failed_attempts
        if ip_rec.count >= limit or (user_rec is not None and user_rec.count >= limit):
            self.flag_suspicious_activity(
                context.source_address, EXCESSIVE_FAILED_ATTEMPTS,
                {
                    "ip_attempts": ip_rec.count,
                    "user_attempts": user_rec.count if user_rec else None,
                },
                account_id=account_key,
            )
        return FailureCounts(ip_rec, user_rec)

    def record_unauthorized_access(self, context: RequestContext,
                                   required_role: str | None,
                                   attempted_action: str | None) -> SecurityEvent:
        event = self.record_event(UNAUTHORIZED_ACCESS, context, {
            "required_role": required_role,
            "attempted_action": attempted_action,
        })
        # Only an authenticated caller with a role can be escalating.
        if context.account_id is not None and context.account_role:
            self.flag_suspicious_activity(
                context.source_address, PRIVILEGE_ESCALATION_ATTEMPT,
                {
                    "user_role": context.account_role,
                    "required_role": required_role,
                    "attempted_action": attempted_action,
                },
                account_id=context.account_id,
            )
        return event

    def record_suspicious_order(self, context: RequestContext, suspicion_type: str,
                                order: dict | None = None) -> SecurityEvent:
        order = order or {}
        items = order.get("items")
        event = self.record_event(SUSPICIOUS_ORDER, context, {
            "suspicion_type": suspicion_type,
            "order_amount": order.get("total"),
            "item_count": len(items) if items is not None else None,
            "shop_count": order.get("shop_count"),
        })

        recent = order.get("recent_order_count")
        over_limit = recent is not None and recent > self.thresholds.max_orders_per_user
        if suspicion_type == EXCESSIVE_ORDER_FREQUENCY or over_limit:
            self.flag_suspicious_activity(
                context.source_address, ORDER_FREQUENCY_ABUSE,
                {"recent_order_count": recent},
                account_id=context.account_id,
            )
        return event

    def flag_suspicious_activity(self, source_address: str, activity_type: str,
                                 details: dict, account_id: str | None = None
                                 ) -> SuspiciousActivity:
        """Classify, store and (if high) alert on one suspicious activity."""
        activity = SuspiciousActivity(
            timestamp=self.clock(),
            activity_type=activity_type,
            source_address=source_address,
            account_id=account_id,
            severity=classify(activity_type, details, self.settings.severity),
            details=details,
        )
        self.activities.append(activity)
        metrics.suspicious_activities_total.labels(activity_type, activity.severity).inc()
        logger.warning("Suspicious activity flagged type=%s severity=%s ip=%s user=%s",
                       activity_type, activity.severity, source_address, account_id)
        self.dispatcher.dispatch(activity)
        return activity

    def register_alert_handler(self, handler):
        return self.dispatcher.register_handler(handler)

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def is_ip_blocked(self, address: str) -> bool:
        return self.blocking.is_blocked(Dimension.ADDRESS, address)

    def is_user_locked(self, account_id: str | None) -> bool:
        return self.blocking.is_blocked(Dimension.ACCOUNT, account_id)

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def reset_address_attempts(self, address: str) -> None:
        self.registries[Dimension.ADDRESS].reset(address)

    def reset_account_attempts(self, account_id: str) -> None:
        self.registries[Dimension.ACCOUNT].reset(account_id)

    def sweep(self) -> SweepResult:
        return self.sweeper.sweep()

    def report(self, time_range: str = "hour") -> dict:
        now = self.clock()
        time_range, seconds = range_seconds(time_range)
        start = now - seconds
        blocked = sum(
            1 for address in self.registries[Dimension.ADDRESS].keys()
            if self.is_ip_blocked(address)
        )
        return build_report(
            time_range, start, now,
            self.events.since(start), self.activities.since(start), blocked,
        )
