"""Retry policy for the dispatcher.

``RetryConfig`` holds the attempt budget and the backoff shape; the dispatcher
owns the loop. Backoff for retry index ``n`` (0-based) is
``min(max_delay, base_delay * 2**n)`` plus uniform jitter in
``[0, jitter * that]``, clamped to ``max_delay``. A server ``Retry-After``
replaces the computed delay when it is larger.
"""
from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Callable, Optional, Protocol

from ..errors import DispatchError


class AttemptLogger(Protocol):  # pragma: no cover - structural protocol
    def __call__(
        self,
        *,
        attempt: int,
        max_attempts: int,
        delay: float | None,
        error: DispatchError | None,
    ) -> None: ...


@dataclass(frozen=True)
class RetryConfig:
    """Attempt budget and backoff shape.

    Attributes:
        max_attempts: Total attempts including the first one.
        base_delay: Backoff seed in seconds.
        max_delay: Upper bound of any single backoff sleep.
        jitter: Fraction of the exponential delay added as random jitter
            (``0`` disables jitter).
        attempt_logger: Optional callback invoked after each attempt.
        rng: Random source for jitter (injectable for tests).
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter: float = 0.1
    attempt_logger: AttemptLogger | None = None
    rng: Callable[[], float] = field(default=random.random, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("backoff delays must be non-negative")
        if self.base_delay > self.max_delay:
            raise ValueError("base_delay cannot exceed max_delay")
        if self.jitter < 0:
            raise ValueError("jitter must be non-negative")

    def backoff(self, retry_index: int, retry_after: Optional[float] = None) -> float:
        """Delay before the retry following failed attempt ``retry_index``."""
        delay = min(self.max_delay, self.base_delay * (2**retry_index))
        if self.jitter:
            delay = min(self.max_delay, delay + delay * self.jitter * self.rng())
        if retry_after is not None and retry_after > delay:
            return retry_after
        return delay


DEFAULT_RETRY_CONFIG = RetryConfig()


def parse_retry_after(value: Optional[str], *, now: Optional[datetime] = None) -> Optional[float]:
    """Parse a ``Retry-After`` header value into seconds.

    Accepts delta-seconds (``"120"``) or an HTTP date. Returns ``None`` when
    the value is absent or unparseable; dates in the past yield ``0.0``.
    """
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None
    try:
        seconds = float(text)
    except ValueError:
        seconds = None
    if seconds is not None:
        return max(0.0, seconds)
    try:
        when = parsedate_to_datetime(text)
    except (TypeError, ValueError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    current = now or datetime.now(timezone.utc)
    return max(0.0, (when - current).total_seconds())


__all__ = ["AttemptLogger", "RetryConfig", "DEFAULT_RETRY_CONFIG", "parse_retry_after"]
