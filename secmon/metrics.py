"""Prometheus metrics for the security monitor.

Each Counter/Gauge below registers itself in the default prometheus_client
REGISTRY on import; the HTTP app mounts that registry at /metrics.
"""

from prometheus_client import Counter, Gauge

# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------
events_total = Counter(
    "secmon_events_total",
    "Security events recorded",
    ["event_type"],
)
suspicious_activities_total = Counter(
    "secmon_suspicious_activities_total",
    "Suspicious activities flagged",
    ["activity_type", "severity"],
)

# ---------------------------------------------------------------------------
# Alerting
# ---------------------------------------------------------------------------
alerts_dispatched_total = Counter(
    "secmon_alerts_dispatched_total",
    "High-severity alerts handed to alert handlers",
)
alert_handler_errors_total = Counter(
    "secmon_alert_handler_errors_total",
    "Alert handler invocations that raised",
)
alerts_dropped_total = Counter(
    "secmon_alerts_dropped_total",
    "Alerts dropped because the alert queue was full",
)

# ---------------------------------------------------------------------------
# Blocking and retention
# ---------------------------------------------------------------------------
blocked_requests_total = Counter(
    "secmon_blocked_requests_total",
    "Requests short-circuited by the request guard",
    ["dimension"],
)
tracked_keys = Gauge(
    "secmon_tracked_keys",
    "Attempt records currently held, per dimension",
    ["dimension"],
)
swept_total = Counter(
    "secmon_swept_total",
    "Records evicted by the retention sweeper",
    ["collection"],
)
