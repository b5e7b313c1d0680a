"""
Dispatch-stage error raised by the rate-limited dispatcher.

`kind` tells the caller how the dispatcher gave up (transient failures that
exhausted the retry budget, permanent failures, deadline expiry, or
cancellation) while `code` keeps the normalized :class:`ErrorCode` for logs.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional

from .error_code import ErrorCode, Stage
from .gemini_error import GeminiError


class DispatchErrorKind(str, Enum):
    TRANSIENT = "transient"
    PERMANENT = "permanent"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


@dataclass(eq=False)
class DispatchError(GeminiError):
    """Failure to obtain a successful response from the service.

    Attributes:
        kind: How the dispatcher gave up.
        code: Normalized error classification.
        status: HTTP status of the last attempt, when one was received.
        attempts: Number of attempts made.
        retry_after: Server supplied ``Retry-After`` delay (seconds) if any.
        raw: Underlying exception for diagnostics.
    """

    kind: DispatchErrorKind = DispatchErrorKind.PERMANENT
    code: ErrorCode = ErrorCode.UNKNOWN
    status: Optional[int] = None
    attempts: int = 0
    retry_after: Optional[float] = None
    raw: Optional[BaseException] = None
    stage: ClassVar[Stage] = Stage.DISPATCH

    @classmethod
    def cancelled(cls, exc: BaseException, attempts: int = 0) -> "DispatchError":
        """Cancellation observed during a dispatch or while its body is read."""
        return cls(
            message=str(exc) or "cancelled",
            kind=DispatchErrorKind.CANCELLED,
            code=ErrorCode.CANCELLED,
            attempts=attempts,
            raw=exc,
        )

    @property
    def retryable(self) -> bool:
        return self.kind is DispatchErrorKind.TRANSIENT

    def __str__(self) -> str:  # pragma: no cover - trivial
        status = f" status={self.status}" if self.status is not None else ""
        return (
            f"{self.stage.value} {self.kind.value} ({self.code.value}{status}, "
            f"attempts={self.attempts}): {self.message}"
        )


__all__ = ["DispatchError", "DispatchErrorKind"]
