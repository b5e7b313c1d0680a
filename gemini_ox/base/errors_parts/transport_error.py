"""
Transport-level failure raised by :class:`~gemini_ox.base.http.Transport`
implementations.

Connection-level errors (refused, reset, DNS, read/write failures) are
transient and retried by the dispatcher; protocol-level errors (malformed HTTP,
unsupported response framing) are permanent.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TransportErrorKind(str, Enum):
    CONNECTION = "connection"
    PROTOCOL = "protocol"


@dataclass(eq=False)
class TransportError(Exception):
    """Raised by transports when no HTTP status could be obtained."""

    kind: TransportErrorKind
    message: str
    raw: Optional[BaseException] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.kind.value}: {self.message}"


__all__ = ["TransportError", "TransportErrorKind"]
