"""Tests for the CPU delta tracker."""

import random

import pytest

from sysdash.cpu import CPUDeltaTracker, compute_utilization
from sysdash.models import CPUTimes


def core(idle: float, busy: float) -> CPUTimes:
    return CPUTimes(user=busy, idle=idle)


class TestComputeUtilization:
    """Tests for the pure utilization function."""

    def test_half_busy(self):
        """idle_delta=50 over total_delta=100 is 50% busy."""
        previous = (core(idle=100.0, busy=100.0),)
        current = (core(idle=150.0, busy=150.0),)
        assert compute_utilization(previous, current, (0.0,)) == (50.0,)

    def test_fully_idle_and_fully_busy(self):
        previous = (core(0.0, 0.0), core(0.0, 0.0))
        current = (core(10.0, 0.0), core(0.0, 10.0))
        assert compute_utilization(previous, current, (0.0, 0.0)) == (0.0, 100.0)

    def test_zero_delta_keeps_previous_value(self):
        """A zero-length interval holds the last value instead of dividing by zero."""
        sample = (core(50.0, 50.0), core(10.0, 90.0))
        assert compute_utilization(sample, sample, (42.0, 7.0)) == (42.0, 7.0)

    def test_fewer_cores_keeps_trailing_values(self):
        """Cores missing from the current sample keep their last value."""
        previous = (core(0.0, 0.0), core(0.0, 0.0), core(0.0, 0.0))
        current = (core(5.0, 5.0),)
        assert compute_utilization(previous, current, (1.0, 2.0, 3.0)) == (50.0, 2.0, 3.0)

    def test_all_buckets_count_toward_total(self):
        previous = (CPUTimes(),)
        current = (
            CPUTimes(user=10, system=10, idle=20, nice=10, iowait=10, irq=10, softirq=10, steal=0),
        )
        # idle is 20 of 80 elapsed seconds
        assert compute_utilization(previous, current, (0.0,)) == (75.0,)

    def test_utilization_stays_in_range(self):
        """Random monotonic counters always give a value in [0, 100]."""
        rng = random.Random(1234)
        previous = tuple(CPUTimes(user=rng.uniform(0, 1e6), idle=rng.uniform(0, 1e6)) for _ in range(8))
        last = (0.0,) * 8
        for _ in range(200):
            current = tuple(
                CPUTimes(
                    user=p.user + rng.uniform(0, 10),
                    system=p.system + rng.uniform(0, 10),
                    idle=p.idle + rng.uniform(0, 10),
                    iowait=p.iowait + rng.uniform(0, 1),
                )
                for p in previous
            )
            last = compute_utilization(previous, current, last)
            assert all(0.0 <= value <= 100.0 for value in last)
            previous = current


class TestCPUDeltaTracker:
    """Tests for the stateful tracker."""

    def test_first_update_is_all_zero(self):
        """With no baseline the first vector is zeros, one per core."""
        tracker = CPUDeltaTracker()
        sample = tuple(core(10.0, 10.0) for _ in range(4))
        assert tracker.update(sample) == (0.0, 0.0, 0.0, 0.0)

    def test_second_update_uses_previous_sample(self):
        tracker = CPUDeltaTracker()
        tracker.update((core(100.0, 100.0),))
        assert tracker.update((core(150.0, 150.0),)) == (50.0,)

    def test_previous_sample_is_replaced(self):
        tracker = CPUDeltaTracker()
        tracker.update((core(0.0, 0.0),))
        tracker.update((core(10.0, 10.0),))
        # Measured against the second sample, not the first
        assert tracker.update((core(20.0, 30.0),)) == pytest.approx((66.6667,), rel=1e-4)

    def test_zero_delta_returns_previous_vector(self):
        tracker = CPUDeltaTracker()
        tracker.update((core(0.0, 0.0),))
        first = tracker.update((core(25.0, 75.0),))
        assert tracker.update((core(25.0, 75.0),)) == first

    def test_last_before_any_update(self):
        assert CPUDeltaTracker().last == ()
