"""Rapid requests — too many security events from one address.

Two shapes of the same signal:
  * a burst: more than 20 events inside one minute
  * sustained volume: more than max_requests_per_ip events inside the
    retention window, which catches slower credential-stuffing proxies
Both flag `rapid_requests`; the analyzer keeps at most one per event.
"""

from secmon.rules import Rule
from secmon.severity import RAPID_REQUESTS


def _label(seconds):
    if seconds % 60 == 0:
        minutes = int(seconds // 60)
        return "1 minute" if minutes == 1 else f"{minutes} minutes"
    return f"{seconds:g} seconds"


class RapidRequests(Rule):
    id = "rapid_requests_burst"
    activity_type = RAPID_REQUESTS
    counts_only = True

    def __init__(self, window_seconds=60, limit=20):
        self.window_seconds = window_seconds
        self.limit = limit

    def trigger(self, count):
        return count > self.limit

    def evidence(self, count):
        return {
            "request_count": count,
            "time_window": _label(self.window_seconds),
        }


class SustainedVolume(RapidRequests):
    id = "rapid_requests_sustained"
