"""Dispatcher input and output value types."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional

from ..http.transport import ByteStream, read_all

_IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "PUT", "DELETE"})


@dataclass(frozen=True)
class SerializedRequest:
    """A fully serialized HTTP request.

    Attributes:
        method: HTTP method.
        url: Absolute URL including query string.
        headers: Request headers (the API key travels here).
        body: Encoded body or ``None``.
        idempotent: Force idempotent treatment regardless of method.
        retry_safe: Non-idempotent request that may still be retried
            (generation calls have no server-side effects).
    """

    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None
    idempotent: bool = False
    retry_safe: bool = False

    @property
    def retryable(self) -> bool:
        return self.idempotent or self.retry_safe or self.method.upper() in _IDEMPOTENT_METHODS


@dataclass
class ResponseStream:
    """Successful (2xx) response with its unread body.

    Attributes:
        status: HTTP status code.
        headers: Response headers.
        stream: Body byte stream; the caller owns it and must close it.
        attempts: Number of attempts the dispatcher made.
        started_at: Clock time at which the admission token for the
            successful attempt was granted.
    """

    status: int
    headers: Mapping[str, str]
    stream: ByteStream
    attempts: int = 1
    started_at: float = 0.0

    def header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    async def read_all(self) -> bytes:
        return await read_all(self.stream)


__all__ = ["SerializedRequest", "ResponseStream"]
