"""Per-core CPU utilization from cumulative time counters."""

from sysdash.models import RawCPUSample, UtilizationVector


def compute_utilization(
    previous: RawCPUSample,
    current: RawCPUSample,
    last: UtilizationVector,
) -> UtilizationVector:
    """
    Compute per-core utilization between two successive samples.

    Args:
        previous: Sample taken on the previous tick.
        current: Sample taken on this tick.
        last: Utilization reported on the previous tick.

    Returns:
        A vector with the cardinality of ``last``. A core whose counters did
        not advance (``total_delta <= 0``), or that is missing from either
        sample, keeps its value from ``last``.
    """
    result = list(last)
    for i, times in enumerate(current):
        if i >= len(previous) or i >= len(result):
            break
        prev = previous[i]
        total_delta = times.total - prev.total
        if total_delta > 0:
            idle_delta = times.idle - prev.idle
            percent = 100.0 * (1.0 - idle_delta / total_delta)
            result[i] = min(100.0, max(0.0, percent))
    return tuple(result)


class CPUDeltaTracker:
    """
    Holds the previous CPU sample between ticks.

    Owned by the collector thread; not safe to share.
    """

    def __init__(self) -> None:
        self._previous: RawCPUSample | None = None
        self._last: UtilizationVector = ()

    @property
    def last(self) -> UtilizationVector:
        """Most recently computed utilization vector."""
        return self._last

    def update(self, sample: RawCPUSample) -> UtilizationVector:
        """Feed a new sample and return the resulting utilization vector."""
        if self._previous is None:
            # No baseline yet, so the first vector is all zeros.
            self._last = (0.0,) * len(sample)
        else:
            self._last = compute_utilization(self._previous, sample, self._last)
        self._previous = sample
        return self._last
