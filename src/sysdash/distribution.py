"""
Pull and push access to the snapshot cache.

Pull clients read the cache once per request. Push clients each run their own
loop that re-reads the cache, sends, and sleeps; there is no broadcast queue,
because only the latest snapshot is ever worth sending.
"""

import asyncio
from contextlib import aclosing
from typing import AsyncIterator, Awaitable, Callable

from sysdash.cache import SnapshotCache
from sysdash.errors import SnapshotUnavailable
from sysdash.logger import get_logger
from sysdash.models import Snapshot

logger = get_logger(__name__)

# Poll period while the cache is still empty after start-up.
EMPTY_BACKOFF = 0.1


def get_latest_snapshot(cache: SnapshotCache) -> Snapshot:
    """
    Return the cached snapshot for a pull request.

    Raises:
        SnapshotUnavailable: No tick has published yet.
    """
    snapshot = cache.read()
    if snapshot is None:
        raise SnapshotUnavailable()
    return snapshot


async def subscribe(
    cache: SnapshotCache,
    interval: float,
    backoff: float = EMPTY_BACKOFF,
) -> AsyncIterator[Snapshot]:
    """Yield the latest snapshot every ``interval`` seconds, forever."""
    while True:
        snapshot = cache.read()
        if snapshot is None:
            await asyncio.sleep(backoff)
            continue
        yield snapshot
        await asyncio.sleep(interval)


async def stream_snapshots(
    cache: SnapshotCache,
    send: Callable[[Snapshot], Awaitable[None]],
    interval: float,
    backoff: float = EMPTY_BACKOFF,
) -> int:
    """
    Run one push connection until sending fails.

    A send failure means the peer is gone; it ends this loop only and never
    touches the cache or other connections.

    Returns:
        Number of snapshots sent.
    """
    sent = 0
    async with aclosing(subscribe(cache, interval, backoff)) as snapshots:
        async for snapshot in snapshots:
            try:
                await send(snapshot)
            except Exception as e:
                logger.info(f"Stream send failed, closing connection: {e!r}")
                break
            sent += 1
    return sent
