"""``Transport`` implementation over ``httpx.AsyncClient``.

Requests are sent with ``stream=True`` so :meth:`HttpxTransport.send`
resolves as soon as response headers arrive; the body is exposed as a
:class:`ByteStream` backed by ``Response.aiter_bytes``.

httpx failures are mapped onto :class:`TransportError`: protocol violations
(``httpx.ProtocolError``, ``httpx.UnsupportedProtocol``) are ``PROTOCOL``,
everything else raised by the network layer is ``CONNECTION``.
"""
from __future__ import annotations

from typing import AsyncIterator, Mapping, Optional

import httpx

from ..errors import TransportError, TransportErrorKind
from ..timeouts import get_timeout_config
from .transport import TransportResponse


def _map_httpx_error(exc: httpx.TransportError) -> TransportError:
    if isinstance(exc, (httpx.ProtocolError, httpx.UnsupportedProtocol)):
        kind = TransportErrorKind.PROTOCOL
    else:
        kind = TransportErrorKind.CONNECTION
    return TransportError(kind=kind, message=f"{type(exc).__name__}: {exc}", raw=exc)


class _HttpxByteStream:
    """Pull-based view over a streaming ``httpx.Response`` body."""

    def __init__(self, response: httpx.Response) -> None:
        self._response = response
        self._iter: AsyncIterator[bytes] = response.aiter_bytes()
        self._closed = False

    async def read(self) -> bytes:
        if self._closed:
            return b""
        while True:
            try:
                chunk = await self._iter.__anext__()
            except StopAsyncIteration:
                await self.aclose()
                return b""
            except httpx.TransportError as exc:
                await self.aclose()
                raise _map_httpx_error(exc) from exc
            if chunk:
                return chunk

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._response.aclose()


class HttpxTransport:
    """Transport backed by an ``httpx.AsyncClient``.

    Parameters:
        client: Optional pre-configured client. When omitted a client is
            created lazily with a timeout derived from
            :func:`get_timeout_config` and owned (closed) by this transport.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None) -> None:
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            cfg = get_timeout_config()
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(cfg.attempt_seconds))
        return self._client

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes],
    ) -> TransportResponse:
        client = self._get_client()
        request = client.build_request(method, url, headers=dict(headers), content=body)
        try:
            response = await client.send(request, stream=True)
        except httpx.TransportError as exc:
            raise _map_httpx_error(exc) from exc
        return TransportResponse(
            status=response.status_code,
            headers=dict(response.headers.items()),
            stream=_HttpxByteStream(response),
        )

    async def aclose(self) -> None:
        """Close the underlying client when owned by this transport."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


__all__ = ["HttpxTransport"]
