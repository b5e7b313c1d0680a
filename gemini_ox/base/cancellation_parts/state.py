"""Flag and reason shared by a cancellation token and the waits it guards."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .cancelled_error import CancelledError


@dataclass
class CancellationState:
    cancelled: bool = False
    reason: Optional[str] = None

    def mark(self, reason: Optional[str]) -> bool:
        """Set the flag; ``False`` when it was already set (first reason wins)."""
        if self.cancelled:
            return False
        self.cancelled = True
        self.reason = reason
        return True

    def error(self) -> CancelledError:
        return CancelledError(self.reason or "operation cancelled")


__all__ = ["CancellationState"]
