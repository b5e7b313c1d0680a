"""HTTP transport package.

Exposes the transport protocol consumed by the dispatcher and its httpx
implementation.
"""

from .transport import ByteStream, MemoryByteStream, Transport, TransportResponse
from .httpx_transport import HttpxTransport

__all__ = [
    "ByteStream",
    "MemoryByteStream",
    "Transport",
    "TransportResponse",
    "HttpxTransport",
]
