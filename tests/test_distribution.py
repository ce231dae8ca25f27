"""Tests for pull and push distribution."""

import asyncio

import pytest

from conftest import make_snapshot
from sysdash.cache import SnapshotCache
from sysdash.distribution import get_latest_snapshot, stream_snapshots, subscribe
from sysdash.errors import SnapshotUnavailable


class TestPull:
    """Tests for single-request reads."""

    def test_unavailable_before_first_publish(self):
        with pytest.raises(SnapshotUnavailable) as excinfo:
            get_latest_snapshot(SnapshotCache())
        assert excinfo.value.retryable
        assert str(excinfo.value) == "Stats not yet available"

    def test_returns_cached_snapshot(self, snapshot):
        cache = SnapshotCache()
        cache.publish(snapshot)
        assert get_latest_snapshot(cache) is snapshot


@pytest.mark.asyncio
async def test_subscribe_waits_for_first_snapshot(snapshot):
    """An empty cache is polled quietly until something is published."""
    cache = SnapshotCache()
    stream = subscribe(cache, interval=0.01, backoff=0.01)
    try:
        first = asyncio.ensure_future(stream.__anext__())
        await asyncio.sleep(0.05)
        assert not first.done()

        cache.publish(snapshot)
        assert await asyncio.wait_for(first, timeout=1.0) is snapshot
    finally:
        await stream.aclose()


@pytest.mark.asyncio
async def test_subscribe_yields_latest_only(identity):
    """Each read returns whatever is cached now; older snapshots are not replayed."""
    cache = SnapshotCache()
    cache.publish(make_snapshot(identity, uptime=1))
    stream = subscribe(cache, interval=0.01)
    try:
        assert (await stream.__anext__()).uptime == 1
        for uptime in (2, 3, 4):
            cache.publish(make_snapshot(identity, uptime=uptime))
        assert (await stream.__anext__()).uptime == 4
    finally:
        await stream.aclose()


@pytest.mark.asyncio
async def test_disconnect_does_not_affect_other_streams(snapshot):
    """One peer failing mid-send ends only its own loop."""
    cache = SnapshotCache()
    cache.publish(snapshot)
    received = []

    async def broken_send(_snapshot):
        raise ConnectionResetError("peer gone")

    async def healthy_send(snap):
        received.append(snap)

    broken = asyncio.create_task(stream_snapshots(cache, broken_send, interval=0.01))
    healthy = asyncio.create_task(stream_snapshots(cache, healthy_send, interval=0.01))

    assert await asyncio.wait_for(broken, timeout=1.0) == 0
    await asyncio.sleep(0.1)
    try:
        assert not healthy.done()
        assert len(received) >= 3
        assert all(s is snapshot for s in received)
        assert cache.read() is snapshot
        assert cache.published_count == 1
    finally:
        healthy.cancel()
        with pytest.raises(asyncio.CancelledError):
            await healthy


@pytest.mark.asyncio
async def test_stream_counts_sent_snapshots(snapshot):
    cache = SnapshotCache()
    cache.publish(snapshot)
    sent = []

    async def send(snap):
        if len(sent) == 3:
            raise RuntimeError("closed")
        sent.append(snap)

    assert await asyncio.wait_for(stream_snapshots(cache, send, interval=0.0), timeout=1.0) == 3
