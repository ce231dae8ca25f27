"""
GPU discovery for sysdash.

The GPU probe is an ordered chain of backends. Each backend either reports a
named device or nothing; the chain stops at the first named device. A host
without a supported GPU simply has no GPU reading.
"""

import os
import re
import shutil
import subprocess
import sys
from typing import Iterable

from sysdash.logger import get_logger
from sysdash.models import GPUReading

logger = get_logger(__name__)

DEFAULT_COMMAND_TIMEOUT = 2.0
DRM_ROOT = "/sys/class/drm"
AMD_VENDOR_ID = "0x1002"
MIB = 1024 * 1024

_UNIT_MULTIPLIERS = {
    "": 1,
    "k": 1024,
    "m": 1024**2,
    "g": 1024**3,
    "t": 1024**4,
}
_MEMORY_VALUE_RE = re.compile(r"^([0-9]*\.?[0-9]+)\s*([kmgt]?)(?:i?b)?$")
_DIGITS_RE = re.compile(r"(\d+)")


def _natural_key(name: str) -> list:
    """Sort key ordering "hwmon2" before "hwmon10"."""
    return [int(part) if part.isdigit() else part for part in _DIGITS_RE.split(name)]


def parse_memory_value(text: str) -> int:
    """
    Normalize a memory string such as ``"8GB"`` or ``"512 MiB"`` to bytes.

    Units are powers of 1024. A bare number is taken as bytes; anything
    unparseable yields 0.
    """
    match = _MEMORY_VALUE_RE.match(text.strip().lower())
    if match is None:
        return 0
    value, unit = match.groups()
    return int(float(value) * _UNIT_MULTIPLIERS[unit])


def _to_float(text: str) -> float:
    """Parse a numeric field, treating placeholders like '[N/A]' as 0."""
    try:
        return float(text.strip())
    except ValueError:
        return 0.0


def _to_int(text: str) -> int:
    try:
        return int(float(text.strip()))
    except ValueError:
        return 0


def parse_rocm_smi(output: str) -> GPUReading | None:
    """Parse ``rocm-smi`` key/value output; None when no product name is found."""
    name = ""
    used_percent = 0.0
    temperature = 0.0
    memory_total = 0
    memory_used = 0

    for raw_line in output.splitlines():
        line = raw_line.strip()
        if ":" not in line:
            continue
        # Lines look like "GPU[0] : Card series: Navi 21"; the value follows the last colon.
        value = line.rpartition(":")[2].strip()

        if "Card series" in line:
            name = value
        elif "GPU use (%)" in line:
            used_percent = _to_float(value.rstrip("%"))
        elif "Temperature" in line and "edge" in line:
            temperature = _to_float(value.rstrip("cC"))
        elif "VRAM Total Used Memory" in line:
            memory_used = parse_memory_value(value)
        elif "VRAM Total Memory" in line:
            memory_total = parse_memory_value(value)

    if not name:
        return None
    return GPUReading(
        name=name,
        memory_total=memory_total,
        memory_used=memory_used,
        used_percent=used_percent,
        temperature=temperature,
    )


def parse_nvidia_smi(output: str) -> GPUReading | None:
    """Parse the first line of ``nvidia-smi --format=csv,noheader,nounits`` output."""
    lines = [line for line in output.strip().splitlines() if line.strip()]
    if not lines:
        return None
    parts = [part.strip() for part in lines[0].split(",")]
    if len(parts) < 5 or not parts[0]:
        return None
    return GPUReading(
        name=parts[0],
        memory_total=_to_int(parts[1]) * MIB,
        memory_used=_to_int(parts[2]) * MIB,
        used_percent=_to_float(parts[3]),
        temperature=_to_float(parts[4]),
    )


def parse_wmi_output(output: str) -> GPUReading | None:
    """Parse ``Name|AdapterRAM`` from the PowerShell video controller query."""
    parts = output.strip().split("|")
    if len(parts) < 2 or not parts[0].strip():
        return None
    # WMI reports neither usage nor temperature; those stay at 0.
    return GPUReading(name=parts[0].strip(), memory_total=_to_int(parts[1]))


class GpuBackend:
    """
    One way of discovering the primary GPU.

    Subclasses set ``name`` and ``platforms`` (``sys.platform`` prefixes the
    backend applies to; empty means every platform) and implement ``read``.
    """

    name = "gpu"
    platforms: frozenset[str] = frozenset()

    def applies_to(self, platform: str) -> bool:
        """Check whether this backend should run on the given platform."""
        return not self.platforms or any(platform.startswith(p) for p in self.platforms)

    def read(self) -> GPUReading | None:
        raise NotImplementedError


class CommandBackend(GpuBackend):
    """Backend that runs an external diagnostic tool and parses its stdout."""

    command: tuple[str, ...] = ()

    def __init__(self, timeout: float = DEFAULT_COMMAND_TIMEOUT) -> None:
        self._timeout = timeout

    def run(self) -> str | None:
        """Run the command; None when it is missing, fails, or times out."""
        executable = shutil.which(self.command[0])
        if executable is None:
            return None
        try:
            result = subprocess.run(
                [executable, *self.command[1:]],
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug(f"{self.name}: command failed: {e}")
            return None
        if result.returncode != 0:
            logger.debug(f"{self.name}: exited with code {result.returncode}: {result.stderr.strip()}")
            return None
        return result.stdout

    def parse(self, output: str) -> GPUReading | None:
        raise NotImplementedError

    def read(self) -> GPUReading | None:
        output = self.run()
        if output is None:
            return None
        return self.parse(output)


class RocmSmiBackend(CommandBackend):
    """AMD devices via ``rocm-smi``."""

    name = "rocm-smi"
    platforms = frozenset({"linux"})
    command = ("rocm-smi", "--showmeminfo", "vram", "--showtemp", "--showuse", "--showproductname")

    def parse(self, output: str) -> GPUReading | None:
        return parse_rocm_smi(output)


class AmdSysfsBackend(GpuBackend):
    """AMD devices via the amdgpu sysfs counters, for hosts without rocm-smi."""

    name = "amdgpu-sysfs"
    platforms = frozenset({"linux"})

    def __init__(self, root: str = DRM_ROOT) -> None:
        self._root = root

    @staticmethod
    def _read(path: str) -> str | None:
        try:
            with open(path, encoding="utf-8") as f:
                return f.read().strip()
        except OSError:
            return None

    def _read_temperature(self, device: str) -> float:
        hwmon = os.path.join(device, "hwmon")
        try:
            entries = sorted(os.listdir(hwmon), key=_natural_key)
        except OSError:
            return 0.0
        for entry in entries:
            raw = self._read(os.path.join(hwmon, entry, "temp1_input"))
            if raw is not None:
                return _to_float(raw) / 1000.0  # Millidegrees
        return 0.0

    def _read_device(self, device: str) -> GPUReading | None:
        vendor = self._read(os.path.join(device, "vendor"))
        if vendor is None or AMD_VENDOR_ID not in vendor:
            return None

        name = self._read(os.path.join(device, "product_name")) or "AMD GPU"
        total = self._read(os.path.join(device, "mem_info_vram_total"))
        used = self._read(os.path.join(device, "mem_info_vram_used"))
        busy = self._read(os.path.join(device, "gpu_busy_percent"))

        return GPUReading(
            name=name,
            memory_total=_to_int(total) if total is not None else 0,
            memory_used=_to_int(used) if used is not None else 0,
            used_percent=_to_float(busy) if busy is not None else 0.0,
            temperature=self._read_temperature(device),
        )

    def read(self) -> GPUReading | None:
        try:
            cards = sorted(os.listdir(self._root), key=_natural_key)
        except OSError:
            return None

        for card in cards:
            # Connector entries such as "card0-DP-1" are not devices.
            if not card.startswith("card") or "-" in card:
                continue
            reading = self._read_device(os.path.join(self._root, card, "device"))
            if reading is not None:
                return reading
        return None


class NvidiaSmiBackend(CommandBackend):
    """NVIDIA devices via ``nvidia-smi``."""

    name = "nvidia-smi"
    command = (
        "nvidia-smi",
        "--query-gpu=name,memory.total,memory.used,utilization.gpu,temperature.gpu",
        "--format=csv,noheader,nounits",
    )

    def parse(self, output: str) -> GPUReading | None:
        return parse_nvidia_smi(output)


class WindowsWmiBackend(CommandBackend):
    """Any Windows display adapter via WMI; picks the one with the most VRAM."""

    name = "wmi"
    platforms = frozenset({"win32"})
    command = (
        "powershell",
        "-NoProfile",
        "-Command",
        "Get-CimInstance Win32_VideoController | Sort-Object -Property AdapterRAM -Descending"
        " | Select-Object -First 1 -Property Name,AdapterRAM"
        " | ForEach-Object { $_.Name + '|' + $_.AdapterRAM }",
    )

    def parse(self, output: str) -> GPUReading | None:
        return parse_wmi_output(output)


def default_backends(timeout: float = DEFAULT_COMMAND_TIMEOUT) -> list[GpuBackend]:
    """All known backends, in fallback order."""
    return [
        RocmSmiBackend(timeout),
        AmdSysfsBackend(),
        NvidiaSmiBackend(timeout),
        WindowsWmiBackend(timeout),
    ]


class GpuProbe:
    """Ordered GPU backend chain for the current platform."""

    def __init__(
        self,
        backends: Iterable[GpuBackend] | None = None,
        platform: str = sys.platform,
    ) -> None:
        if backends is None:
            backends = default_backends()
        self._backends = [b for b in backends if b.applies_to(platform)]

    @property
    def backends(self) -> list[GpuBackend]:
        return list(self._backends)

    def probe(self) -> GPUReading | None:
        """Return the first named device any backend reports, or None."""
        for backend in self._backends:
            try:
                reading = backend.read()
            except Exception as e:
                logger.debug(f"GPU backend {backend.name} failed: {e}")
                continue
            if reading is not None and reading.name:
                return reading
        return None

    __call__ = probe
