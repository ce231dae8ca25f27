"""psutil-backed subsystem probes for sysdash."""

import platform
import socket
import sys
import time
from dataclasses import dataclass
from typing import Callable

import psutil

from sysdash.gpu import GpuProbe
from sysdash.models import (
    CPU_BUCKETS,
    CPUTimes,
    DiskReading,
    GPUReading,
    MemoryReading,
    NetworkInterfaceReading,
    RawCPUSample,
    StaticIdentity,
)

CPUINFO_PATH = "/proc/cpuinfo"


def probe_cpu_times() -> RawCPUSample:
    """Cumulative time buckets for every logical core."""
    # Buckets vary by platform (e.g. no iowait on macOS); missing ones count as 0.
    return tuple(
        CPUTimes(**{bucket: getattr(times, bucket, 0.0) for bucket in CPU_BUCKETS})
        for times in psutil.cpu_times(percpu=True)
    )


def probe_memory() -> MemoryReading:
    mem = psutil.virtual_memory()
    return MemoryReading(total=mem.total, used=mem.used, available=mem.available)


def probe_disk(path: str) -> DiskReading:
    usage = psutil.disk_usage(path)
    return DiskReading(path=path, total=usage.total, used=usage.used, free=usage.free)


def probe_network() -> tuple[NetworkInterfaceReading, ...]:
    """Per-interface counters, skipping interfaces that have seen no traffic."""
    counters = psutil.net_io_counters(pernic=True)
    return tuple(
        NetworkInterfaceReading(name=name, bytes_sent=c.bytes_sent, bytes_recv=c.bytes_recv)
        for name, c in counters.items()
        if c.bytes_sent > 0 or c.bytes_recv > 0
    )


def probe_uptime() -> int:
    return int(time.time() - psutil.boot_time())


def _read_cpu_model() -> str:
    if sys.platform.startswith("linux"):
        try:
            with open(CPUINFO_PATH, encoding="utf-8") as f:
                for line in f:
                    key, _, value = line.partition(":")
                    if key.strip() == "model name":
                        return value.strip()
        except OSError:
            pass
    return platform.processor()


def resolve_static_identity(hostname: str | None = None) -> StaticIdentity:
    """
    Resolve the host facts that never change while the process runs.

    Args:
        hostname: Override for the reported hostname.
    """
    logical = psutil.cpu_count(logical=True) or 0
    physical = psutil.cpu_count(logical=False) or logical
    return StaticIdentity(
        hostname=hostname or socket.gethostname(),
        cpu_model=_read_cpu_model(),
        physical_cores=physical,
        logical_cores=logical,
        os=platform.system().lower(),
        arch=platform.machine(),
    )


@dataclass(slots=True, frozen=True)
class ProbeSet:
    """The probes one collector tick calls; swap any of them out in tests."""

    cpu_times: Callable[[], RawCPUSample]
    memory: Callable[[], MemoryReading]
    disk: Callable[[str], DiskReading]
    network: Callable[[], tuple[NetworkInterfaceReading, ...]]
    gpu: Callable[[], GPUReading | None]
    uptime: Callable[[], int]

    @classmethod
    def default(cls, gpu_probe: GpuProbe | None = None) -> "ProbeSet":
        """Probes reading the local host through psutil."""
        return cls(
            cpu_times=probe_cpu_times,
            memory=probe_memory,
            disk=probe_disk,
            network=probe_network,
            gpu=gpu_probe if gpu_probe is not None else GpuProbe(),
            uptime=probe_uptime,
        )
