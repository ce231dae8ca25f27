"""Shared fixtures for sysdash tests."""

import pytest

from sysdash.models import (
    CPUTimes,
    DiskReading,
    MemoryReading,
    NetworkInterfaceReading,
    Snapshot,
    StaticIdentity,
)
from sysdash.probes import ProbeSet

GIB = 1024**3


@pytest.fixture
def identity() -> StaticIdentity:
    return StaticIdentity(
        hostname="testhost",
        cpu_model="Test CPU @ 3.00GHz",
        physical_cores=2,
        logical_cores=4,
        os="linux",
        arch="x86_64",
    )


def make_probes(**overrides) -> ProbeSet:
    """Probes returning fixed readings; override any of them by name."""
    probes = {
        "cpu_times": lambda: (CPUTimes(user=10.0, idle=90.0), CPUTimes(user=20.0, idle=80.0)),
        "memory": lambda: MemoryReading(total=8 * GIB, used=4 * GIB, available=4 * GIB),
        "disk": lambda path: DiskReading(path=path, total=100 * GIB, used=50 * GIB, free=50 * GIB),
        "network": lambda: (NetworkInterfaceReading(name="eth0", bytes_sent=100, bytes_recv=200),),
        "gpu": lambda: None,
        "uptime": lambda: 3600,
    }
    probes.update(overrides)
    return ProbeSet(**probes)


def make_snapshot(identity: StaticIdentity, **overrides) -> Snapshot:
    fields = {
        "identity": identity,
        "cpu_percent": (10.0, 20.0),
        "memory": MemoryReading(total=8 * GIB, used=4 * GIB, available=4 * GIB),
        "disk": DiskReading(path="/", total=100 * GIB, used=50 * GIB, free=50 * GIB),
        "network": (NetworkInterfaceReading(name="eth0", bytes_sent=100, bytes_recv=200),),
        "gpu": None,
        "uptime": 3600,
    }
    fields.update(overrides)
    return Snapshot(**fields)


@pytest.fixture
def snapshot(identity) -> Snapshot:
    return make_snapshot(identity)
