"""Clock abstraction used for backoff, deadlines and token refill.

The dispatcher and token bucket never read time or sleep directly; they go
through a :class:`Clock` so tests can substitute a deterministic fake.
"""
from __future__ import annotations

import asyncio
import time
from typing import Protocol


class Clock(Protocol):  # pragma: no cover - structural protocol
    def now(self) -> float: ...

    async def sleep(self, seconds: float) -> None: ...


class SystemClock:
    """Monotonic wall clock backed by ``time.monotonic`` and ``asyncio.sleep``."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))


__all__ = ["Clock", "SystemClock"]
