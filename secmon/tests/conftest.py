"""
Shared fixtures: a controllable clock and monitors built on it.
No test sleeps; time only moves when a test advances the clock.
"""
import pytest

from secmon.config import Settings, Thresholds
from secmon.engine import SecurityMonitor


class FakeClock:
    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


DEFAULT_THRESHOLDS = dict(
    max_failed_attempts=5,
    time_window=900,
    max_orders_per_user=10,
    max_requests_per_ip=100,
    address_cooling_period=300,
    account_cooling_period=600,
)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_thresholds():
    def _make(**overrides):
        return Thresholds(**{**DEFAULT_THRESHOLDS, **overrides})
    return _make


@pytest.fixture
def make_monitor(clock, make_thresholds):
    created = []

    def _make(**overrides):
        monitor = SecurityMonitor(Settings(thresholds=make_thresholds(**overrides)),
                                  clock=clock)
        created.append(monitor)
        return monitor

    yield _make
    for monitor in created:
        monitor.stop()


@pytest.fixture
def monitor(make_monitor):
    return make_monitor()
