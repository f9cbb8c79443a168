"""Block / lock decisions for the request hot path.

A key is blocked iff all three hold:

    count >= max_failed_attempts
    now - first_attempt_at < time_window          (burst is still recent)
    now - last_attempt_at  < cooling period        (attacker has not gone quiet)

The two age checks are deliberately separate: the first stops a stale burst
from locking forever, the second lets a key heal after a quiet period even
while the burst is inside the window.  Each check is a single dict lookup.
"""

from secmon.config import Thresholds
from secmon.registry import AttemptRegistry, Dimension


class BlockingDecisionService:

    def __init__(self, thresholds: Thresholds,
                 registries: dict[Dimension, AttemptRegistry], clock):
        self.thresholds = thresholds
        self._registries = registries
        self._clock = clock
        self._cooling = {
            Dimension.ADDRESS: thresholds.address_cooling_period,
            Dimension.ACCOUNT: thresholds.account_cooling_period,
        }

    def is_blocked(self, dimension: Dimension, key: str | None) -> bool:
        if key is None:
            return False
        rec = self._registries[dimension].get(key)
        if rec is None:
            return False

        assert rec.count >= 1, f"attempt record {key!r} has count {rec.count}"
        now = self._clock()
        return (
            rec.count >= self.thresholds.max_failed_attempts
            and now - rec.first_attempt_at < self.thresholds.time_window
            and now - rec.last_attempt_at < self._cooling[dimension]
        )
