"""HTTP and WebSocket transport for sysdash."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, HTTPException, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from sysdash.cache import SnapshotCache
from sysdash.distribution import get_latest_snapshot, stream_snapshots
from sysdash.errors import SnapshotUnavailable
from sysdash.logger import get_logger
from sysdash.models import Snapshot
from sysdash.monitor import SystemMonitor

logger = get_logger(__name__)


def create_app(
    cache: SnapshotCache,
    interval: float,
    monitor: SystemMonitor | None = None,
) -> FastAPI:
    """
    Build the FastAPI application serving the snapshot cache.

    Args:
        cache: Cache to read snapshots from.
        interval: Seconds between snapshots on a WebSocket stream.
        monitor: Collector started and stopped with the application, if given.
    """

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        if monitor is not None:
            monitor.start()
        try:
            yield
        finally:
            if monitor is not None:
                monitor.stop()

    app = FastAPI(title="sysdash", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/api/stats")
    def stats() -> dict:
        try:
            snapshot = get_latest_snapshot(cache)
        except SnapshotUnavailable as e:
            raise HTTPException(status_code=503, detail=str(e)) from e
        return snapshot.to_dict()

    @app.websocket("/api/ws")
    async def stream(websocket: WebSocket) -> None:
        await websocket.accept()
        client = websocket.client
        logger.info(f"Client connected: {client}")

        async def send(snapshot: Snapshot) -> None:
            await websocket.send_json(snapshot.to_dict())

        # A closed peer surfaces as a failed send, which ends the stream.
        sent = await stream_snapshots(cache, send, interval)
        logger.info(f"Client disconnected: {client} after {sent} snapshots")

    return app
