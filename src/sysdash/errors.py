"""Exceptions raised by sysdash."""


class SysdashError(Exception):
    """Base class for sysdash errors."""


class ProbeError(SysdashError):
    """A subsystem probe failed on this tick."""

    def __init__(self, probe: str, cause: BaseException | None = None, message: str | None = None) -> None:
        self.probe = probe
        self.cause = cause
        if message is None:
            message = f"probe '{probe}' failed" + (f": {cause}" if cause is not None else "")
        super().__init__(message)


class ProbeTimeout(ProbeError):
    """A subsystem probe did not finish before the tick deadline."""

    def __init__(self, probe: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(probe, message=f"probe '{probe}' timed out after {timeout:.1f}s")


class SnapshotUnavailable(SysdashError):
    """
    No snapshot has been published yet.

    This is the start-up state, not a fault; callers should retry.
    """

    retryable = True

    def __init__(self, message: str = "Stats not yet available") -> None:
        super().__init__(message)
