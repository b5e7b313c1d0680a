"""Timeout values for dispatch.

Two limits apply to every dispatch:

overall
    Absolute budget across all attempts and backoff sleeps. Checked against
    the clock before each attempt and before each backoff.
attempt
    Budget of a single attempt (connect + response headers). An attempt that
    exceeds it is abandoned and counted as a transient failure.

``get_timeout_config()`` returns a process-cached value built from the
optional environment variables ``GEMINI_OX_TIMEOUT_OVERALL_SECONDS`` and
``GEMINI_OX_TIMEOUT_ATTEMPT_SECONDS``. The cache is refreshed when either
variable changes.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

OVERALL_ENV = "GEMINI_OX_TIMEOUT_OVERALL_SECONDS"
ATTEMPT_ENV = "GEMINI_OX_TIMEOUT_ATTEMPT_SECONDS"


@dataclass(frozen=True)
class TimeoutConfig:
    """Normalized timeout values (seconds).

    Attributes:
        overall_seconds: Deadline spanning every attempt; ``None`` disables it.
        attempt_seconds: Per-attempt limit; ``None`` disables it.
    """

    overall_seconds: float | None = 120.0
    attempt_seconds: float | None = 60.0

    def __post_init__(self) -> None:
        for name in ("overall_seconds", "attempt_seconds"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} must be positive")


_CACHED: TimeoutConfig | None = None
_ENV_GUARD: str | None = None


def _parse_env_float(name: str, default: float | None) -> float | None:
    """Read ``name`` as a positive float; unset, invalid or non-positive yields ``default``."""
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        val = float(raw)
    except ValueError:
        return default
    return val if val > 0 else default


def get_timeout_config() -> TimeoutConfig:
    """Return the process-cached :class:`TimeoutConfig`."""
    global _CACHED, _ENV_GUARD  # noqa: PLW0603 - module cache
    guard = "/".join([os.getenv(OVERALL_ENV, ""), os.getenv(ATTEMPT_ENV, "")])
    if _CACHED is not None and _ENV_GUARD == guard:
        return _CACHED
    defaults = TimeoutConfig()
    _CACHED = TimeoutConfig(
        overall_seconds=_parse_env_float(OVERALL_ENV, defaults.overall_seconds),
        attempt_seconds=_parse_env_float(ATTEMPT_ENV, defaults.attempt_seconds),
    )
    _ENV_GUARD = guard
    return _CACHED


__all__ = ["TimeoutConfig", "get_timeout_config", "OVERALL_ENV", "ATTEMPT_ENV"]
