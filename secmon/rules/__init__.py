# Analyzer heuristics as Python classes.
#
# Each heuristic lives in its own module and answers three questions about
# the recent events from one source address: does this event concern me
# (match), do the events in my window add up to something suspicious
# (trigger), and what numbers should the flagged activity carry (evidence).
# Rules that only need how many events there were set counts_only, and then
# receive that number instead of the events themselves.
# Limits come from configuration, so rules are instantiated per monitor.


class Rule:
    """Base analyzer rule. Subclass and implement trigger() + evidence()."""

    id: str
    activity_type: str
    window_seconds: float
    counts_only = False

    def match(self, event) -> bool:
        """Return True if this rule should look at the event's address."""
        return True

    def trigger(self, events) -> bool:
        """Given same-address events inside the window (or their count), should we flag?"""
        raise NotImplementedError

    def evidence(self, events) -> dict:
        """Details attached to the flagged activity; drives severity."""
        return {}

    def group_key(self, event) -> str:
        """Events are grouped per source address."""
        return event.source_address


from secmon.rules.rapid_requests import RapidRequests, SustainedVolume
from secmon.rules.endpoint_scanning import EndpointScanning


def default_rules(analysis, thresholds) -> list[Rule]:
    """Rule set for one monitor, in precedence order."""
    return [
        RapidRequests(analysis.window_seconds, analysis.rapid_request_limit),
        SustainedVolume(thresholds.time_window, thresholds.max_requests_per_ip),
        EndpointScanning(analysis.window_seconds, analysis.endpoint_scan_limit),
    ]
