"""Transport protocol: send a request, receive status, headers and a byte stream.

Purpose:
    Decouple the dispatcher from any concrete HTTP library. A transport
    resolves once response headers are available; the body is pulled
    incrementally through :class:`ByteStream`.

Contract:
    - ``send`` raises :class:`~gemini_ox.base.errors.TransportError` when no
      HTTP status could be obtained (connection refused, reset, malformed
      response).
    - ``ByteStream.read`` returns ``b""`` exactly at end-of-stream and keeps
      returning ``b""`` afterwards.
    - ``ByteStream.aclose`` releases the connection; it is idempotent.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Protocol


class ByteStream(Protocol):  # pragma: no cover - structural protocol
    async def read(self) -> bytes: ...

    async def aclose(self) -> None: ...


@dataclass
class TransportResponse:
    """Response head plus the unread body stream."""

    status: int
    headers: Mapping[str, str]
    stream: ByteStream

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None


class Transport(Protocol):  # pragma: no cover - structural protocol
    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes],
    ) -> TransportResponse: ...


@dataclass
class MemoryByteStream:
    """In-memory :class:`ByteStream` yielding pre-split chunks in order."""

    chunks: Iterable[bytes] = field(default_factory=list)
    closed: bool = False

    def __post_init__(self) -> None:
        self._pending = [bytes(c) for c in self.chunks if c]

    @classmethod
    def of(cls, data: bytes) -> "MemoryByteStream":
        return cls([data])

    async def read(self) -> bytes:
        if self.closed or not self._pending:
            return b""
        return self._pending.pop(0)

    async def aclose(self) -> None:
        self.closed = True
        self._pending.clear()


async def read_all(stream: ByteStream) -> bytes:
    """Drain ``stream`` into one bytes object and close it."""
    parts = []
    try:
        while True:
            chunk = await stream.read()
            if not chunk:
                break
            parts.append(chunk)
    finally:
        await stream.aclose()
    return b"".join(parts)


__all__ = ["ByteStream", "MemoryByteStream", "Transport", "TransportResponse", "read_all"]
