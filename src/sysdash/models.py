"""Data models for sysdash."""

from dataclasses import dataclass
from typing import Any

CPU_BUCKETS = ("user", "system", "idle", "nice", "iowait", "irq", "softirq", "steal")


@dataclass(slots=True, frozen=True)
class CPUTimes:
    """Cumulative time buckets of a single core, in seconds."""

    user: float = 0.0
    system: float = 0.0
    idle: float = 0.0
    nice: float = 0.0
    iowait: float = 0.0
    irq: float = 0.0
    softirq: float = 0.0
    steal: float = 0.0

    @property
    def total(self) -> float:
        """Sum of all buckets."""
        return (
            self.user
            + self.system
            + self.idle
            + self.nice
            + self.iowait
            + self.irq
            + self.softirq
            + self.steal
        )


# One entry per logical core, index-aligned across ticks.
RawCPUSample = tuple[CPUTimes, ...]
UtilizationVector = tuple[float, ...]


@dataclass(slots=True, frozen=True)
class MemoryReading:
    """Point-in-time virtual memory usage."""

    total: int
    used: int
    available: int = 0

    @property
    def used_percent(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.used / self.total * 100.0


@dataclass(slots=True, frozen=True)
class DiskReading:
    """Point-in-time usage of the filesystem holding ``path``."""

    path: str
    total: int
    used: int
    free: int

    @property
    def used_percent(self) -> float:
        # Reserved blocks are excluded, so the base is used + free, not total.
        base = self.used + self.free
        if base <= 0:
            return 0.0
        return self.used / base * 100.0


@dataclass(slots=True, frozen=True)
class NetworkInterfaceReading:
    """Cumulative traffic counters of one network interface."""

    name: str
    bytes_sent: int
    bytes_recv: int


@dataclass(slots=True, frozen=True)
class GPUReading:
    """
    Point-in-time reading of the primary GPU.

    Backends that cannot measure a field report it as 0.
    """

    name: str
    memory_total: int = 0
    memory_used: int = 0
    used_percent: float = 0.0
    temperature: float = 0.0  # Degrees Celsius


@dataclass(slots=True, frozen=True)
class StaticIdentity:
    """Host facts resolved once at start and shared by every snapshot."""

    hostname: str
    cpu_model: str
    physical_cores: int
    logical_cores: int
    os: str
    arch: str


@dataclass(slots=True, frozen=True)
class Snapshot:
    """Immutable, fully assembled point-in-time reading of the host."""

    identity: StaticIdentity
    cpu_percent: UtilizationVector
    memory: MemoryReading
    disk: DiskReading
    network: tuple[NetworkInterfaceReading, ...]
    gpu: GPUReading | None
    uptime: int  # Seconds

    def to_dict(self) -> dict[str, Any]:
        """Render the snapshot in its JSON wire shape."""
        data: dict[str, Any] = {
            "hostname": self.identity.hostname,
            "uptime": self.uptime,
            "os": self.identity.os,
            "arch": self.identity.arch,
            "cpu": {
                "model": self.identity.cpu_model,
                "cores": self.identity.physical_cores,
                "threads": self.identity.logical_cores,
                "percent": list(self.cpu_percent),
            },
            "memory": {
                "total": self.memory.total,
                "used": self.memory.used,
                "available": self.memory.available,
                "usedPercent": self.memory.used_percent,
            },
            "disk": {
                "path": self.disk.path,
                "total": self.disk.total,
                "used": self.disk.used,
                "free": self.disk.free,
                "usedPercent": self.disk.used_percent,
            },
            "network": [
                {"name": n.name, "bytesSent": n.bytes_sent, "bytesRecv": n.bytes_recv}
                for n in self.network
            ],
        }
        if self.gpu is not None:
            data["gpu"] = {
                "name": self.gpu.name,
                "memoryTotal": self.gpu.memory_total,
                "memoryUsed": self.gpu.memory_used,
                "usedPercent": self.gpu.used_percent,
                "temperature": self.gpu.temperature,
            }
        return data
