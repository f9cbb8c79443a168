"""Severity classification for suspicious activities.

A pure function of (activity_type, details).  The cut-offs live in a
SeverityPolicy so operators can tune them from the thresholds file without
touching code; the defaults reproduce the classification table below.

    activity_type                 high if                     else
    excessive_failed_attempts     ip/user attempts > 10       medium
    privilege_escalation_attempt  always                      high
    order_frequency_abuse         recent_order_count > 20     medium
    rapid_requests                request_count > 50          medium
    endpoint_scanning             unique_endpoints > 20       medium
    anything else                 -                           low
"""

from dataclasses import dataclass

LOW = "low"
MEDIUM = "medium"
HIGH = "high"

EXCESSIVE_FAILED_ATTEMPTS = "excessive_failed_attempts"
PRIVILEGE_ESCALATION_ATTEMPT = "privilege_escalation_attempt"
ORDER_FREQUENCY_ABUSE = "order_frequency_abuse"
RAPID_REQUESTS = "rapid_requests"
ENDPOINT_SCANNING = "endpoint_scanning"


@dataclass(frozen=True)
class SeverityPolicy:
    failed_attempts: int = 10
    recent_order_count: int = 20
    request_count: int = 50
    unique_endpoints: int = 20


DEFAULT_POLICY = SeverityPolicy()


def classify(activity_type: str, details: dict,
             policy: SeverityPolicy = DEFAULT_POLICY) -> str:
    """Map an activity type and its evidence to low / medium / high."""
    if activity_type == EXCESSIVE_FAILED_ATTEMPTS:
        over = ((details.get("ip_attempts") or 0) > policy.failed_attempts
                or (details.get("user_attempts") or 0) > policy.failed_attempts)
        return HIGH if over else MEDIUM
    if activity_type == PRIVILEGE_ESCALATION_ATTEMPT:
        return HIGH
    if activity_type == ORDER_FREQUENCY_ABUSE:
        return _above(details, "recent_order_count", policy.recent_order_count)
    if activity_type == RAPID_REQUESTS:
        return _above(details, "request_count", policy.request_count)
    if activity_type == ENDPOINT_SCANNING:
        return _above(details, "unique_endpoints", policy.unique_endpoints)
    return LOW


def _above(details, key, limit):
    # Missing or None evidence counts as zero.
    return HIGH if (details.get(key) or 0) > limit else MEDIUM
