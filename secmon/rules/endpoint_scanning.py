"""Endpoint scanning — one address touching many distinct endpoints quickly.

Normal clients hit a handful of routes; enumeration tools walk the API
surface.  Fires when more than 10 distinct endpoints show up from the same
address within a minute.
"""

from collections import Counter

from secmon.rules import Rule
from secmon.severity import ENDPOINT_SCANNING


class EndpointScanning(Rule):
    id = "endpoint_scanning"
    activity_type = ENDPOINT_SCANNING

    def __init__(self, window_seconds=60, limit=10):
        self.window_seconds = window_seconds
        self.limit = limit

    def trigger(self, events):
        return len({e.endpoint for e in events}) > self.limit

    def evidence(self, events):
        access = Counter(e.endpoint for e in events)
        return {
            "unique_endpoints": len(access),
            "endpoint_access": dict(access),
        }
