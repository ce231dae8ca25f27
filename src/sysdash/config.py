"""Runtime configuration for sysdash, read from the environment."""

import os
from dataclasses import dataclass, replace
from typing import Any, Mapping

from sysdash.logger import get_logger

logger = get_logger(__name__)

DEFAULT_PORT = 8080
DEFAULT_HOST = "0.0.0.0"
DEFAULT_DISK_PATH = "/"
DEFAULT_INTERVAL_MS = 500
MIN_INTERVAL_MS = 100
DEFAULT_PROBE_TIMEOUT = 3.0
# Floor for the per-tick probe deadline shared by all probes.
MIN_PROBE_TIMEOUT = 0.5


def _get(environ: Mapping[str, str], key: str, fallback: str) -> str:
    value = environ.get(key, "")
    return value if value != "" else fallback


def _get_number(environ: Mapping[str, str], key: str, fallback: Any, kind: type) -> Any:
    raw = environ.get(key, "")
    if raw == "":
        return fallback
    try:
        return kind(raw)
    except ValueError:
        logger.warning(f"Invalid value {raw!r} for {key}. Using default {fallback}.")
        return fallback


@dataclass(frozen=True)
class Config:
    """Settings for the collector, the web server and logging."""

    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    disk_path: str = DEFAULT_DISK_PATH
    update_interval_ms: int = DEFAULT_INTERVAL_MS
    hostname: str | None = None
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    log_level: str = "INFO"
    log_file: str | None = None

    def __post_init__(self) -> None:
        if self.update_interval_ms < MIN_INTERVAL_MS:
            object.__setattr__(self, "update_interval_ms", MIN_INTERVAL_MS)
        if self.probe_timeout < MIN_PROBE_TIMEOUT:
            object.__setattr__(self, "probe_timeout", MIN_PROBE_TIMEOUT)

    @property
    def update_interval(self) -> float:
        """Sampling and streaming interval in seconds."""
        return self.update_interval_ms / 1000.0

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Config":
        """
        Build a config from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``.

        Returns:
            The loaded configuration.
        """
        env = os.environ if environ is None else environ
        return cls(
            port=_get_number(env, "PORT", DEFAULT_PORT, int),
            host=_get(env, "HOST", DEFAULT_HOST),
            disk_path=_get(env, "DISK_PATH", DEFAULT_DISK_PATH),
            update_interval_ms=_get_number(env, "UPDATE_INTERVAL_MS", DEFAULT_INTERVAL_MS, int),
            hostname=env.get("HOSTNAME") or None,
            probe_timeout=_get_number(env, "SYSDASH_PROBE_TIMEOUT", DEFAULT_PROBE_TIMEOUT, float),
            log_level=_get(env, "SYSDASH_LOG_LEVEL", "INFO"),
            log_file=env.get("SYSDASH_LOG_FILE") or None,
        )

    def with_overrides(self, **overrides: Any) -> "Config":
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})
