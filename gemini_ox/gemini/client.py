"""Gemini client facade.

Wires configuration, transport, dispatcher, stream decoder and response
aggregator into three operations:

- ``await send(request)``: one ``generateContent`` call, parsed with
  :func:`parse_response`;
- ``stream(request)``: ``streamGenerateContent?alt=sse`` exposed as an async
  iterator of generation events;
- ``await stream_aggregate(request)``: the stream folded into the same
  :class:`AggregatedResponse` shape as ``send``.

The API key travels verbatim in the ``x-goog-api-key`` header; nothing else
is done for authentication.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from typing import AsyncIterator, Dict, Optional

from ..base.cancellation import CancellationToken, CancelledError
from ..base.clock import Clock, SystemClock
from ..base.dispatch import Dispatcher, SerializedRequest
from ..base.errors import (
    DecodeError,
    DecodeErrorKind,
    DispatchError,
    GeminiError,
    TransportError,
    ValidationError,
)
from ..base.http import HttpxTransport, Transport
from ..base.logging import get_logger, normalized_log_event
from ..base.log_support import LogContext
from ..base.models import AggregatedResponse, FileReference, GenerateContentRequest, GenerateContentRequestBuilder
from ..base.resilience import DEFAULT_RETRY_CONFIG, NoopLimiter, RateLimiter, RetryConfig
from ..base.streaming import GenerationEvent, ResponseAggregator, decode_stream, parse_response
from ..base.timeouts import TimeoutConfig, get_timeout_config
from ..config import (
    GEMINI_API_KEY_HEADER,
    GEMINI_DEFAULT_API_VERSION,
    GEMINI_DEFAULT_BASE_URL,
    ClientSettings,
    is_placeholder,
    load_settings,
)
from .files import FileUpload, upload_file


def _request_id() -> str:
    return uuid.uuid4().hex[:12]


def _error_code(exc: GeminiError) -> str:
    if isinstance(exc, DispatchError):
        return exc.code.value
    return exc.stage.value


class GeminiClient:
    """Async client for the ``generateContent`` family of endpoints.

    Build one with :meth:`builder` or :meth:`from_settings`. The client owns
    its transport when it created it; use ``async with`` or :meth:`aclose`.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = GEMINI_DEFAULT_BASE_URL,
        api_version: str = GEMINI_DEFAULT_API_VERSION,
        transport: Optional[Transport] = None,
        limiter: Optional[RateLimiter] = None,
        retry: RetryConfig = DEFAULT_RETRY_CONFIG,
        timeouts: Optional[TimeoutConfig] = None,
        clock: Optional[Clock] = None,
        default_model: Optional[str] = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._api_version = api_version
        self._owns_transport = transport is None
        self._transport: Transport = transport or HttpxTransport()
        self._clock = clock or SystemClock()
        self._default_model = default_model
        self._logger = get_logger("gemini")
        self._dispatcher = Dispatcher(
            self._transport,
            clock=self._clock,
            limiter=limiter or NoopLimiter(self._clock),
            retry=retry,
            timeouts=timeouts or get_timeout_config(),
            logger=get_logger("dispatch"),
        )

    # ------------------------------------------------------------ factories
    @staticmethod
    def builder() -> "GeminiClientBuilder":
        return GeminiClientBuilder()

    @classmethod
    def from_settings(
        cls,
        settings: Optional[ClientSettings] = None,
        *,
        transport: Optional[Transport] = None,
        clock: Optional[Clock] = None,
    ) -> "GeminiClient":
        """Build a client from :func:`load_settings` (or the given settings).

        Raises:
            ValidationError: no usable API key is configured.
        """
        settings = settings or load_settings()
        builder = (
            cls.builder()
            .with_api_version(settings.api_version)
            .with_base_url(settings.base_url)
            .with_retry(settings.retry.to_retry_config())
            .with_timeouts(settings.timeouts.to_timeout_config())
            .with_limiter(settings.rate_limit.build_limiter(clock))
            .with_default_model(settings.model)
        )
        if settings.api_key:
            builder.with_api_key(settings.api_key)
        if transport is not None:
            builder.with_transport(transport)
        if clock is not None:
            builder.with_clock(clock)
        return builder.build()

    # ----------------------------------------------------------- properties
    @property
    def api_version(self) -> str:
        return self._api_version

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def default_model(self) -> Optional[str]:
        return self._default_model

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    def request(self) -> GenerateContentRequestBuilder:
        """Start a request builder, pre-set to the configured default model."""
        builder = GenerateContentRequest.builder()
        if self._default_model:
            builder.model(self._default_model)
        return builder

    # -------------------------------------------------------- serialization
    def _headers(self) -> Dict[str, str]:
        return {GEMINI_API_KEY_HEADER: self._api_key, "Content-Type": "application/json"}

    def endpoint(self, request: GenerateContentRequest, *, stream: bool = False) -> str:
        method = "streamGenerateContent?alt=sse" if stream else "generateContent"
        return f"{self._base_url}/{self._api_version}/models/{request.model_path}:{method}"

    def serialize(self, request: GenerateContentRequest, *, stream: bool = False) -> SerializedRequest:
        body = json.dumps(request.to_wire(), ensure_ascii=False).encode("utf-8")
        return SerializedRequest(
            method="POST",
            url=self.endpoint(request, stream=stream),
            headers=self._headers(),
            body=body,
            retry_safe=True,
        )

    # ------------------------------------------------------------ operations
    async def send(
        self,
        request: GenerateContentRequest,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> AggregatedResponse:
        """Generate a complete response.

        Raises:
            DispatchError: the request could not be delivered, or
                ``cancellation_token`` fired (kind ``CANCELLED``).
            DecodeError: the body is truncated, malformed or a service error.
            SchemaMismatch: the output violates the request's schemas.
        """
        ctx = LogContext(model=request.model_path, operation="generate", request_id=_request_id())
        normalized_log_event(
            self._logger,
            "generate.start",
            ctx,
            phase="start",
            turns=len(request.turns),
            has_schema=request.response_schema is not None,
            functions=len(request.functions) or None,
        )
        t0 = time.perf_counter()
        try:
            response = await self._dispatcher.dispatch(self.serialize(request), cancellation_token, ctx=ctx)
            try:
                if cancellation_token is not None:
                    body = await cancellation_token.guard(response.read_all())
                else:
                    body = await response.read_all()
            except CancelledError as exc:
                raise DispatchError.cancelled(exc, response.attempts) from exc
            except TransportError as exc:
                raise DecodeError(
                    message=f"connection lost while reading the body: {exc.message}",
                    kind=DecodeErrorKind.TRUNCATED,
                ) from exc
            result = parse_response(body, request)
        except GeminiError as exc:
            self._log_error("generate.error", ctx, exc, t0)
            raise
        normalized_log_event(
            self._logger,
            "generate.end",
            ctx,
            phase="finalize",
            attempt=response.attempts,
            emitted=True,
            tokens=result.usage,
            finish_reason=result.finish_reason.value if result.finish_reason else None,
            latency_ms=round((time.perf_counter() - t0) * 1000.0, 3),
        )
        return result

    async def stream(
        self,
        request: GenerateContentRequest,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> AsyncIterator[GenerationEvent]:
        """Yield generation events as the service produces them.

        Dispatch happens on the first pull. Closing the iterator early drops
        the connection. Cancellation at any point raises
        ``DispatchError(kind=CANCELLED)``.
        """
        ctx = LogContext(model=request.model_path, operation="stream", request_id=_request_id())
        normalized_log_event(self._logger, "stream.start", ctx, phase="start", turns=len(request.turns))
        t0 = time.perf_counter()
        emitted = 0
        try:
            response = await self._dispatcher.dispatch(
                self.serialize(request, stream=True), cancellation_token, ctx=ctx
            )
            events = decode_stream(response.stream, cancellation_token=cancellation_token, attempts=response.attempts)
            try:
                async for event in events:
                    emitted += 1
                    yield event
            finally:
                await events.aclose()
        except GeminiError as exc:
            self._log_error("stream.error", ctx, exc, t0, emitted=emitted)
            raise
        normalized_log_event(
            self._logger,
            "stream.end",
            ctx,
            phase="finalize",
            emitted=emitted > 0,
            events=emitted,
            latency_ms=round((time.perf_counter() - t0) * 1000.0, 3),
        )

    async def stream_aggregate(
        self,
        request: GenerateContentRequest,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> AggregatedResponse:
        """Stream ``request`` and fold the events into one response."""
        events = self.stream(request, cancellation_token)
        try:
            return await ResponseAggregator.for_request(request).afold(events)
        finally:
            await events.aclose()

    async def upload(
        self,
        upload: FileUpload,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> FileReference:
        """Upload a file with the resumable protocol; see :func:`upload_file`."""
        return await upload_file(
            self._dispatcher,
            upload,
            base_url=self._base_url,
            api_version=self._api_version,
            api_key=self._api_key,
            cancellation_token=cancellation_token,
        )

    # --------------------------------------------------------------- helpers
    def _log_error(
        self,
        event: str,
        ctx: LogContext,
        exc: GeminiError,
        t0: float,
        *,
        emitted: Optional[int] = None,
    ) -> None:
        normalized_log_event(
            self._logger,
            event,
            ctx,
            phase="finalize",
            error_code=_error_code(exc),
            emitted=bool(emitted) if emitted is not None else None,
            level=logging.WARNING,
            error=str(exc),
            latency_ms=round((time.perf_counter() - t0) * 1000.0, 3),
        )

    # -------------------------------------------------------------- lifecycle
    async def aclose(self) -> None:
        if self._owns_transport and isinstance(self._transport, HttpxTransport):
            await self._transport.aclose()

    async def __aenter__(self) -> "GeminiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"GeminiClient(base_url={self._base_url!r}, api_version={self._api_version!r})"


class GeminiClientBuilder:
    """Fluent configuration for :class:`GeminiClient`; ``build()`` validates."""

    def __init__(self) -> None:
        self._api_key: Optional[str] = None
        self._api_version = GEMINI_DEFAULT_API_VERSION
        self._base_url = GEMINI_DEFAULT_BASE_URL
        self._transport: Optional[Transport] = None
        self._limiter: Optional[RateLimiter] = None
        self._retry = DEFAULT_RETRY_CONFIG
        self._timeouts: Optional[TimeoutConfig] = None
        self._clock: Optional[Clock] = None
        self._default_model: Optional[str] = None

    def with_api_key(self, api_key: str) -> "GeminiClientBuilder":
        self._api_key = api_key
        return self

    def with_api_version(self, api_version: str) -> "GeminiClientBuilder":
        self._api_version = api_version
        return self

    def with_base_url(self, base_url: str) -> "GeminiClientBuilder":
        self._base_url = base_url
        return self

    def with_transport(self, transport: Transport) -> "GeminiClientBuilder":
        self._transport = transport
        return self

    def with_limiter(self, limiter: RateLimiter) -> "GeminiClientBuilder":
        self._limiter = limiter
        return self

    def with_retry(self, retry: RetryConfig) -> "GeminiClientBuilder":
        self._retry = retry
        return self

    def with_timeouts(self, timeouts: TimeoutConfig) -> "GeminiClientBuilder":
        self._timeouts = timeouts
        return self

    def with_clock(self, clock: Clock) -> "GeminiClientBuilder":
        self._clock = clock
        return self

    def with_default_model(self, model: str) -> "GeminiClientBuilder":
        self._default_model = model
        return self

    def build(self) -> GeminiClient:
        """Return the client.

        Raises:
            ValidationError: the API key is missing or a placeholder, or the
                API version / base URL is empty.
        """
        violations = []
        if not self._api_key or not self._api_key.strip() or is_placeholder(self._api_key):
            violations.append("API key not set")
        if not self._api_version or not self._api_version.strip():
            violations.append("API version must be non-empty")
        if not self._base_url or not self._base_url.strip():
            violations.append("base URL must be non-empty")
        if violations:
            raise ValidationError(violations=violations)
        return GeminiClient(
            self._api_key.strip(),
            base_url=self._base_url.strip(),
            api_version=self._api_version.strip(),
            transport=self._transport,
            limiter=self._limiter,
            retry=self._retry,
            timeouts=self._timeouts,
            clock=self._clock,
            default_model=self._default_model,
        )


__all__ = ["GeminiClient", "GeminiClientBuilder"]
