"""Verification Test: slow and numerous push clients never stall collection.

Runs the real psutil-backed collector while many streaming consumers read the
cache, some of them far slower than the sampling interval, and checks that the
collector keeps publishing at its own cadence.
"""

import asyncio
import time

import pytest

from sysdash.cache import SnapshotCache
from sysdash.distribution import stream_snapshots
from sysdash.monitor import SystemMonitor
from sysdash.probes import resolve_static_identity

NUM_CONSUMERS = 100


@pytest.fixture
def running_monitor():
    monitor = SystemMonitor(SnapshotCache(), resolve_static_identity(), poll_rate=0.1)
    monitor.start()
    try:
        yield monitor
    finally:
        monitor.stop()


class TestLoad:
    """Load verification suite tests."""

    @pytest.mark.asyncio
    async def test_collector_keeps_ticking_under_slow_consumers(self, running_monitor):
        cache = running_monitor.cache
        deliveries = [0] * NUM_CONSUMERS

        def make_send(index: int):
            async def send(_snapshot):
                deliveries[index] += 1
                # Every other consumer is ten times slower than the collector
                if index % 2:
                    await asyncio.sleep(1.0)
            return send

        tasks = [
            asyncio.create_task(stream_snapshots(cache, make_send(i), interval=0.05))
            for i in range(NUM_CONSUMERS)
        ]
        try:
            start_count = cache.published_count
            start = time.monotonic()
            await asyncio.sleep(2.0)
            elapsed = time.monotonic() - start
            published = cache.published_count - start_count
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        # 0.1s interval plus probe time; well under this bound means a stall
        assert published >= int(elapsed / 1.0), f"only {published} snapshots in {elapsed:.1f}s"
        assert all(count >= 1 for count in deliveries)

    @pytest.mark.asyncio
    async def test_consumers_dropping_out_leave_cache_intact(self, running_monitor):
        cache = running_monitor.cache

        async def flaky_send(_snapshot):
            raise BrokenPipeError("client went away")

        results = await asyncio.wait_for(
            asyncio.gather(*(stream_snapshots(cache, flaky_send, interval=0.05) for _ in range(NUM_CONSUMERS))),
            timeout=10.0,
        )
        assert results == [0] * NUM_CONSUMERS

        before = cache.published_count
        deadline = time.monotonic() + 3.0
        while cache.published_count == before and time.monotonic() < deadline:
            await asyncio.sleep(0.05)
        assert cache.published_count > before
        assert cache.read() is not None
