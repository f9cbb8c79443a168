"""Security report over a recent time range.

Read-only: works on snapshots taken from the stores and never mutates
them.  An empty store yields a zeroed report.  Only what is still inside
the retention window can be reported, so a `week` report covers at most
`time_window` of history.
"""

from collections import Counter

from secmon.events import isoformat
from secmon.severity import HIGH

TIME_RANGES = {
    "hour": 60 * 60,
    "day": 24 * 60 * 60,
    "week": 7 * 24 * 60 * 60,
}
DEFAULT_RANGE = "hour"

_TOP_N = 10


def range_seconds(time_range: str) -> tuple[str, int]:
    """Resolve a range name; unknown names fall back to an hour."""
    if time_range not in TIME_RANGES:
        time_range = DEFAULT_RANGE
    return time_range, TIME_RANGES[time_range]


def build_report(time_range, start, now, events, activities, blocked_ips) -> dict:
    events_by_type = Counter(e.event_type for e in events)
    events_by_ip = Counter(e.source_address for e in events)
    by_severity = Counter(a.severity for a in activities)

    # Counter.most_common keeps first-seen order among ties.
    top_ips = dict(events_by_ip.most_common(_TOP_N))

    recent_high = sorted(
        (a for a in activities if a.severity == HIGH),
        key=lambda a: a.timestamp,
        reverse=True,
    )[:_TOP_N]

    return {
        "timeRange": time_range,
        "period": {
            "start": isoformat(start),
            "end": isoformat(now),
        },
        "summary": {
            "totalEvents": len(events),
            "totalSuspiciousActivities": len(activities),
            "uniqueIPs": len(events_by_ip),
            "blockedIPs": blocked_ips,
        },
        "breakdown": {
            "eventsByType": dict(events_by_type),
            "topIPs": top_ips,
            "activitiesBySeverity": dict(by_severity),
        },
        "recentAlerts": [
            {
                "type": a.activity_type,
                "timestamp": isoformat(a.timestamp),
                "ip": a.source_address,
                "severity": a.severity,
            }
            for a in recent_high
        ],
    }
