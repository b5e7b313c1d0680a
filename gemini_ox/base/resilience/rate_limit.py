"""Admission control for outgoing attempts.

``TokenBucket`` is the only shared mutable state in the pipeline. Waiters
queue on an ``asyncio.Lock`` (granted in FIFO order), and the head of the
queue sleeps on the clock until enough tokens have refilled. Tokens are
deducted only when granted, so a cancelled waiter never consumes any.
"""
from __future__ import annotations

import asyncio
from typing import Optional, Protocol

from ..cancellation import CancellationToken
from ..clock import Clock, SystemClock


class RateLimiter(Protocol):  # pragma: no cover - structural protocol
    async def acquire(
        self, tokens: int = 1, *, cancellation_token: Optional[CancellationToken] = None
    ) -> float: ...

    def release(self, tokens: int = 1) -> None: ...


class NoopLimiter:
    """Pass-through limiter; grants immediately and tracks nothing."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()

    async def acquire(
        self, tokens: int = 1, *, cancellation_token: Optional[CancellationToken] = None
    ) -> float:
        if cancellation_token is not None:
            cancellation_token.raise_if_cancelled()
        return self._clock.now()

    def release(self, tokens: int = 1) -> None:
        return None


class TokenBucket:
    """Token bucket with ``capacity`` tokens refilled at ``refill_rate`` per second.

    The bucket starts full. ``acquire`` returns the clock time at which the
    tokens were granted.
    """

    def __init__(
        self,
        capacity: int,
        refill_rate: float,
        clock: Clock | None = None,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        if refill_rate <= 0:
            raise ValueError("refill_rate must be positive")
        self._capacity = int(capacity)
        self._rate = float(refill_rate)
        self._clock = clock or SystemClock()
        self._tokens = float(capacity)
        self._last = self._clock.now()
        self._lock = asyncio.Lock()

    @classmethod
    def per_interval(cls, requests: int, interval_seconds: float, clock: Clock | None = None) -> "TokenBucket":
        """Bucket admitting ``requests`` per ``interval_seconds`` (burst = requests)."""
        return cls(capacity=requests, refill_rate=requests / interval_seconds, clock=clock)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def refill_rate(self) -> float:
        return self._rate

    @property
    def available(self) -> float:
        self._refill()
        return self._tokens

    def _refill(self) -> None:
        now = self._clock.now()
        elapsed = now - self._last
        if elapsed > 0:
            self._tokens = min(float(self._capacity), self._tokens + elapsed * self._rate)
            self._last = now

    async def acquire(
        self, tokens: int = 1, *, cancellation_token: Optional[CancellationToken] = None
    ) -> float:
        """Wait until ``tokens`` are available, deduct them and return the grant time.

        Raises:
            ValueError: ``tokens`` exceeds the bucket capacity.
            CancelledError: ``cancellation_token`` fired while waiting.
        """
        if tokens < 1:
            raise ValueError("tokens must be >= 1")
        if tokens > self._capacity:
            raise ValueError(f"cannot acquire {tokens} tokens from bucket of capacity {self._capacity}")
        if cancellation_token is not None:
            await cancellation_token.guard(
                self._lock.acquire(), on_abandon=lambda _: self._lock.release()
            )
        else:
            await self._lock.acquire()
        try:
            while True:
                if cancellation_token is not None:
                    cancellation_token.raise_if_cancelled()
                self._refill()
                if self._tokens >= tokens:
                    self._tokens -= tokens
                    return self._clock.now()
                wait = (tokens - self._tokens) / self._rate
                if cancellation_token is not None:
                    await cancellation_token.guard(self._clock.sleep(wait))
                else:
                    await self._clock.sleep(wait)
        finally:
            self._lock.release()

    def release(self, tokens: int = 1) -> None:
        """Return unused tokens (capped at capacity)."""
        self._refill()
        self._tokens = min(float(self._capacity), self._tokens + tokens)


__all__ = ["RateLimiter", "NoopLimiter", "TokenBucket"]
