"""Background collector for sysdash."""

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable

from sysdash.cache import SnapshotCache
from sysdash.config import DEFAULT_PROBE_TIMEOUT, MIN_PROBE_TIMEOUT, Config
from sysdash.cpu import CPUDeltaTracker
from sysdash.errors import ProbeError, ProbeTimeout
from sysdash.logger import get_logger
from sysdash.models import (
    DiskReading,
    MemoryReading,
    Snapshot,
    StaticIdentity,
    UtilizationVector,
)
from sysdash.probes import ProbeSet, resolve_static_identity

logger = get_logger(__name__)

MIN_POLL_RATE = 0.1

# Without these a snapshot is not worth publishing; the previous one stays cached.
MANDATORY_PROBES = frozenset({"memory", "disk"})


def _call_probe(name: str, probe: Callable[..., Any], *args: Any) -> Any:
    try:
        return probe(*args)
    except Exception as e:
        raise ProbeError(name, e) from e


class SystemMonitor:
    """
    System monitor that samples the host and publishes snapshots to a cache.

    Runs in a separate daemon thread. Each tick reads CPU times synchronously
    (they feed the delta tracker), fans the remaining probes out to a thread
    pool and waits for all of them, then publishes one immutable snapshot.
    A failing probe degrades its field; a failing mandatory probe (memory or
    disk) skips the publish for that tick.
    """

    def __init__(
        self,
        cache: SnapshotCache,
        identity: StaticIdentity,
        probes: ProbeSet | None = None,
        disk_path: str = "/",
        poll_rate: float = 0.5,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
    ) -> None:
        """
        Initialize the SystemMonitor.

        Args:
            cache: Cache the snapshots are published to.
            identity: Static host facts copied into every snapshot.
            probes: Subsystem probes. Defaults to the psutil-backed ones.
            disk_path: Path whose filesystem the disk probe reports.
            poll_rate: Seconds between ticks, clamped to MIN_POLL_RATE.
            probe_timeout: Seconds a tick waits for its concurrent probes,
                clamped to MIN_PROBE_TIMEOUT.
        """
        self._cache = cache
        self._identity = identity
        self._probes = probes if probes is not None else ProbeSet.default()
        self._disk_path = disk_path
        self._poll_rate = max(MIN_POLL_RATE, poll_rate)
        self._probe_timeout = max(MIN_PROBE_TIMEOUT, probe_timeout)
        self._tracker = CPUDeltaTracker()
        self._executor: ThreadPoolExecutor | None = None
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @classmethod
    def from_config(cls, config: Config, probes: ProbeSet | None = None) -> "SystemMonitor":
        """Wire a collector and its own cache from the configuration."""
        return cls(
            SnapshotCache(),
            resolve_static_identity(config.hostname),
            probes=probes,
            disk_path=config.disk_path,
            poll_rate=config.update_interval,
            probe_timeout=config.probe_timeout,
        )

    @property
    def cache(self) -> SnapshotCache:
        return self._cache

    @property
    def poll_rate(self) -> float:
        """Get the current poll rate."""
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, value: float) -> None:
        """Set the poll rate."""
        self._poll_rate = max(MIN_POLL_RATE, value)

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="SystemMonitor",
        )
        self._thread.start()
        logger.info(f"Collector started (interval={self._poll_rate:.2f}s, disk={self._disk_path})")

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("Unexpected error during collection tick")

            self._stop_event.wait(timeout=self._poll_rate)

    def tick(self) -> Snapshot | None:
        """
        Run one sampling cycle.

        Returns:
            The published snapshot, or None when a mandatory probe failed and
            the cache was left untouched.
        """
        cpu_percent = self._sample_cpu()

        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=5, thread_name_prefix="probe")
        executor = self._executor
        futures: dict[str, Future[Any]] = {
            "memory": executor.submit(_call_probe, "memory", self._probes.memory),
            "disk": executor.submit(_call_probe, "disk", self._probes.disk, self._disk_path),
            "network": executor.submit(_call_probe, "network", self._probes.network),
            "gpu": executor.submit(_call_probe, "gpu", self._probes.gpu),
            "uptime": executor.submit(_call_probe, "uptime", self._probes.uptime),
        }
        results = self._gather(futures)

        missing = sorted(name for name in MANDATORY_PROBES if results.get(name) is None)
        if missing:
            logger.error(f"Skipping snapshot, mandatory probes failed: {', '.join(missing)}")
            return None

        memory: MemoryReading = results["memory"]
        disk: DiskReading = results["disk"]
        snapshot = Snapshot(
            identity=self._identity,
            cpu_percent=cpu_percent,
            memory=memory,
            disk=disk,
            network=tuple(results.get("network") or ()),
            gpu=results.get("gpu"),
            uptime=results.get("uptime") or 0,
        )
        self._cache.publish(snapshot)
        return snapshot

    def _sample_cpu(self) -> UtilizationVector:
        """Feed the delta tracker; on failure keep the last known vector."""
        try:
            sample = _call_probe("cpu_times", self._probes.cpu_times)
        except ProbeError as e:
            logger.warning(str(e))
            return self._tracker.last
        return self._tracker.update(sample)

    def _result(self, name: str, future: Future[Any], done: set[Future[Any]]) -> Any:
        """
        Return one probe's reading.

        Raises:
            ProbeTimeout: The probe missed the shared deadline.
            ProbeError: The probe raised.
        """
        if future not in done:
            future.cancel()
            raise ProbeTimeout(name, self._probe_timeout)
        return future.result()

    def _gather(self, futures: dict[str, Future[Any]]) -> dict[str, Any]:
        """
        Wait for all probe futures, sharing one deadline.

        Failed and timed-out probes are logged and left out of the result.
        """
        done, _ = wait(futures.values(), timeout=self._probe_timeout)
        results: dict[str, Any] = {}
        for name, future in futures.items():
            try:
                results[name] = self._result(name, future, done)
            except ProbeError as e:
                logger.warning(str(e))
        return results
