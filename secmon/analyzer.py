"""Suspicion analyzer — evaluates each new event against the address rules.

Pure business logic over the event store; flagging, severity and alerting
happen in the monitor.  For each rule:
  1. Filter — does this event concern the rule?
  2. Route  — the rule groups by source address
  3. Query  — only that address's events newer than the rule's cutoff
              (just their count for counts_only rules)
  4. Evaluate — ask the rule whether those events should be flagged
"""

from secmon.rules import Rule
from secmon.store import EventStore


class Finding:
    """One rule hit: the activity type to flag plus its evidence."""

    __slots__ = ("activity_type", "rule_id", "details")

    def __init__(self, activity_type, rule_id, details):
        self.activity_type = activity_type
        self.rule_id = rule_id
        self.details = details

    def __repr__(self):
        return f"Finding({self.activity_type!r}, rule={self.rule_id!r})"


class SuspicionAnalyzer:

    def __init__(self, store: EventStore, rules: list[Rule]):
        self.store = store
        self.rules = rules

    def analyze(self, event) -> list[Finding]:
        """Zero or more findings for *event*; at most one per activity type.

        Rules are ordered by precedence, so the first rule to fire for an
        activity type wins (a one-minute burst beats sustained volume).
        """
        findings = []
        seen = set()
        for rule in self.rules:
            if rule.activity_type in seen or not rule.match(event):
                continue
            key = rule.group_key(event)
            # An event exactly window_seconds old is outside the window.
            cutoff = event.timestamp - rule.window_seconds
            if rule.counts_only:
                observed = self.store.count_for_address(key, cutoff)
            else:
                observed = self.store.for_address(key, cutoff)
            if rule.trigger(observed):
                seen.add(rule.activity_type)
                findings.append(
                    Finding(rule.activity_type, rule.id, rule.evidence(observed))
                )
        return findings
