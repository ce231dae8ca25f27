"""Single-slot cache holding the latest snapshot."""

import threading

from sysdash.models import Snapshot


class SnapshotCache:
    """
    Latest published snapshot, shared by the collector and every reader.

    Snapshots are immutable, so publishing is a reference swap. The lock is
    held only for that swap (or the matching read), so readers never wait on
    snapshot assembly and the collector never waits on slow consumers.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshot: Snapshot | None = None
        self._published = 0

    def publish(self, snapshot: Snapshot) -> None:
        """Replace the cached snapshot."""
        with self._lock:
            self._snapshot = snapshot
            self._published += 1

    def read(self) -> Snapshot | None:
        """Return the latest snapshot, or None before the first publish."""
        with self._lock:
            return self._snapshot

    @property
    def is_empty(self) -> bool:
        return self.read() is None

    @property
    def published_count(self) -> int:
        """Number of snapshots published so far."""
        with self._lock:
            return self._published
