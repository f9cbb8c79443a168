"""Tests for AttemptRegistry — counting, expiry restart, reset, concurrency."""

import threading

import pytest

from secmon.registry import AttemptRegistry, Dimension


class TestCounting:
    def setup_method(self):
        self.registry = AttemptRegistry(Dimension.ADDRESS, time_window=900)

    @pytest.mark.parametrize("calls", [1, 2, 5, 17])
    def test_count_equals_number_of_calls(self, calls):
        rec = None
        for i in range(calls):
            rec = self.registry.record_failure("10.0.0.1", 1000.0 + i)
        assert rec.count == calls

    def test_first_and_last_timestamps(self):
        self.registry.record_failure("k", 1000.0)
        self.registry.record_failure("k", 1010.0)
        rec = self.registry.record_failure("k", 1020.0)
        assert rec.first_attempt_at == 1000.0
        assert rec.last_attempt_at == 1020.0

    def test_returned_record_is_a_snapshot(self):
        rec = self.registry.record_failure("k", 1000.0)
        self.registry.record_failure("k", 1001.0)
        assert rec.count == 1
        assert self.registry.get("k").count == 2

    def test_unknown_key_has_no_record(self):
        assert self.registry.get("nobody") is None


class TestExpiry:
    def test_failure_after_window_starts_fresh_count(self):
        registry = AttemptRegistry(Dimension.ADDRESS, time_window=900)
        for i in range(4):
            registry.record_failure("k", 1000.0 + i)
        rec = registry.record_failure("k", 1900.0)  # exactly time_window after first
        assert rec.count == 1
        assert rec.first_attempt_at == 1900.0

    def test_failure_just_inside_window_keeps_counting(self):
        registry = AttemptRegistry(Dimension.ADDRESS, time_window=900)
        registry.record_failure("k", 1000.0)
        rec = registry.record_failure("k", 1899.999)
        assert rec.count == 2

    def test_evict_drops_records_first_seen_before_cutoff(self):
        registry = AttemptRegistry(Dimension.ACCOUNT, time_window=900)
        registry.record_failure("old", 1000.0)
        registry.record_failure("new", 1500.0)
        assert registry.evict(1200.0) == 1
        assert registry.keys() == ["new"]


class TestReset:
    def test_reset_deletes_record(self):
        registry = AttemptRegistry(Dimension.ADDRESS, time_window=900)
        registry.record_failure("k", 1000.0)
        assert registry.reset("k") is True
        assert registry.get("k") is None

    def test_reset_absent_key_is_noop(self):
        registry = AttemptRegistry(Dimension.ADDRESS, time_window=900)
        assert registry.reset("missing") is False
        assert registry.reset("missing") is False

    def test_count_restarts_after_reset(self):
        registry = AttemptRegistry(Dimension.ADDRESS, time_window=900)
        for i in range(3):
            registry.record_failure("k", 1000.0 + i)
        registry.reset("k")
        assert registry.record_failure("k", 1005.0).count == 1


class TestDimensions:
    def test_address_and_account_are_independent(self, monitor):
        monitor.registries[Dimension.ADDRESS].record_failure("same-key", 1.0)
        assert monitor.registries[Dimension.ACCOUNT].get("same-key") is None


class TestConcurrency:
    def test_parallel_failures_are_not_lost(self):
        registry = AttemptRegistry(Dimension.ADDRESS, time_window=10_000)
        threads_n, per_thread = 8, 500
        start = threading.Barrier(threads_n)

        def worker():
            start.wait()
            for _ in range(per_thread):
                registry.record_failure("10.0.0.1", 1000.0)

        threads = [threading.Thread(target=worker) for _ in range(threads_n)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert registry.get("10.0.0.1").count == threads_n * per_thread
