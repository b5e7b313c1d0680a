"""Rate-limited, retrying request dispatcher.

Purpose
-------
Turn a :class:`SerializedRequest` into a successful :class:`ResponseStream`
or a :class:`DispatchError`, applying admission control, retry with
exponential backoff and jitter, and deadlines.

Attempt loop
------------
1. Check cancellation and the overall deadline.
2. Acquire one admission token (every attempt pays, failed ones included).
3. Send through the transport under the per-attempt timeout
   (``min(attempt_seconds, remaining overall budget)``).
4. 2xx returns; 429/5xx, connection errors and attempt timeouts are
   transient; other statuses and protocol errors are permanent.
5. Transient failures back off (``Retry-After`` honored when larger) until
   ``max_attempts`` is exhausted or the deadline would be crossed.

Notes
-----
- Non-idempotent requests get a single attempt unless marked ``retry_safe``.
- No retry crosses a cancellation boundary: cancellation observed anywhere
  surfaces as ``DispatchError(kind=CANCELLED)``.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional

from ..cancellation import CancellationToken, CancelledError
from ..clock import Clock, SystemClock
from ..errors import (
    DispatchError,
    DispatchErrorKind,
    ErrorCode,
    TransportError,
    TransportErrorKind,
    classify_status,
    is_transient_status,
)
from ..http.transport import Transport, TransportResponse, read_all
from ..log_support import LogContext
from ..logging import get_logger, normalized_log_event
from ..resilience.rate_limit import NoopLimiter, RateLimiter
from ..resilience.retry import DEFAULT_RETRY_CONFIG, RetryConfig, parse_retry_after
from ..timeouts import TimeoutConfig, get_timeout_config
from .request import ResponseStream, SerializedRequest

# Error bodies are only read for diagnostics.
_MAX_ERROR_BODY = 64 * 1024


def parse_error_body(body: bytes) -> Optional[str]:
    """Extract a readable message from the service's JSON error body.

    Understands ``{"error": {"code": .., "message": .., "status": ..}}`` and
    falls back to the (truncated) raw text. Returns ``None`` for empty bodies.
    """
    if not body:
        return None
    text = body[:_MAX_ERROR_BODY].decode("utf-8", errors="replace").strip()
    try:
        payload = json.loads(text)
    except ValueError:
        return text or None
    if isinstance(payload, list) and payload:
        payload = payload[0]
    err = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(err, dict):
        message = err.get("message")
        status = err.get("status")
        if message and status:
            return f"{status}: {message}"
        if message:
            return str(message)
    return text or None


class _AttemptFailure(Exception):
    """Internal signal carrying one failed attempt's classification."""

    def __init__(
        self,
        *,
        transient: bool,
        code: ErrorCode,
        message: str,
        status: Optional[int] = None,
        retry_after: Optional[float] = None,
        raw: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.transient = transient
        self.code = code
        self.message = message
        self.status = status
        self.retry_after = retry_after
        self.raw = raw


class Dispatcher:
    """Dispatch serialized requests through a transport with resilience policies.

    Parameters:
        transport: Collaborator performing the actual HTTP exchange.
        clock: Time source for deadlines and backoff sleeps.
        limiter: Admission control; defaults to :class:`NoopLimiter`.
        retry: Attempt budget and backoff shape.
        timeouts: Overall and per-attempt limits; defaults to
            :func:`get_timeout_config`.
        logger: Logger receiving ``dispatch.*`` events.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        clock: Clock | None = None,
        limiter: RateLimiter | None = None,
        retry: RetryConfig = DEFAULT_RETRY_CONFIG,
        timeouts: TimeoutConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._transport = transport
        self._clock = clock or SystemClock()
        self._limiter = limiter or NoopLimiter(self._clock)
        self._retry = retry
        self._timeouts = timeouts or get_timeout_config()
        self._logger = logger or get_logger("gemini_ox.dispatch")

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def retry(self) -> RetryConfig:
        return self._retry

    @property
    def timeouts(self) -> TimeoutConfig:
        return self._timeouts

    async def dispatch(
        self,
        request: SerializedRequest,
        cancellation_token: Optional[CancellationToken] = None,
        *,
        ctx: Optional[LogContext] = None,
    ) -> ResponseStream:
        """Send ``request`` until it succeeds or the policies give up.

        Raises:
            DispatchError: with ``kind`` TRANSIENT (budget exhausted),
                PERMANENT, TIMEOUT or CANCELLED.
        """
        overall = self._timeouts.overall_seconds
        deadline = self._clock.now() + overall if overall is not None else None
        max_attempts = self._retry.max_attempts if request.retryable else 1
        attempt = 0
        while True:
            attempt += 1
            self._check_cancelled(cancellation_token, attempt - 1)
            self._check_deadline(deadline, attempt - 1, ctx)
            started_at = await self._admit(cancellation_token, attempt)
            if deadline is not None and self._clock.now() >= deadline:
                self._limiter.release(1)
                self._raise_timeout(attempt - 1, ctx)
            if cancellation_token is not None and cancellation_token.cancelled:
                self._limiter.release(1)
                self._check_cancelled(cancellation_token, attempt - 1)
            try:
                response = await self._attempt(request, deadline, cancellation_token, attempt)
            except _AttemptFailure as failure:
                normalized_log_event(
                    self._logger,
                    "dispatch.attempt",
                    ctx,
                    phase="dispatch",
                    attempt=attempt,
                    error_code=failure.code.value,
                    emitted=False,
                    status=failure.status,
                )
                if not failure.transient or attempt >= max_attempts:
                    self._notify(attempt, max_attempts, None, failure)
                    kind = DispatchErrorKind.TRANSIENT if failure.transient else DispatchErrorKind.PERMANENT
                    raise self._error(kind, failure, attempt, ctx)
                delay = self._retry.backoff(attempt - 1, failure.retry_after)
                self._notify(attempt, max_attempts, delay, failure)
                self._check_cancelled(cancellation_token, attempt)
                remaining = self._remaining(deadline)
                if remaining is not None and delay >= remaining:
                    self._raise_timeout(attempt, ctx, cause=failure)
                normalized_log_event(
                    self._logger,
                    "dispatch.retry",
                    ctx,
                    phase="backoff",
                    attempt=attempt,
                    error_code=failure.code.value,
                    delay=round(delay, 3),
                )
                await self._sleep(delay, cancellation_token, attempt)
                continue
            self._notify(attempt, max_attempts, None, None)
            normalized_log_event(
                self._logger,
                "dispatch.attempt",
                ctx,
                phase="dispatch",
                attempt=attempt,
                emitted=True,
                status=response.status,
            )
            return ResponseStream(
                status=response.status,
                headers=response.headers,
                stream=response.stream,
                attempts=attempt,
                started_at=started_at,
            )

    # ------------------------------------------------------------------ steps
    async def _admit(self, token: Optional[CancellationToken], attempt: int) -> float:
        try:
            return await self._limiter.acquire(1, cancellation_token=token)
        except CancelledError as exc:
            raise self._cancelled(attempt - 1, exc) from exc

    async def _attempt(
        self,
        request: SerializedRequest,
        deadline: Optional[float],
        token: Optional[CancellationToken],
        attempt: int,
    ) -> TransportResponse:
        limit = self._timeouts.attempt_seconds
        remaining = self._remaining(deadline)
        if remaining is not None:
            limit = remaining if limit is None else min(limit, remaining)
        send = self._transport.send(request.method, request.url, request.headers, request.body)
        try:
            if token is not None:
                send = token.guard(send)
            if limit is not None:
                response = await asyncio.wait_for(send, timeout=limit)
            else:
                response = await send
        except CancelledError as exc:
            raise self._cancelled(attempt, exc) from exc
        except asyncio.TimeoutError as exc:
            raise _AttemptFailure(
                transient=True,
                code=ErrorCode.TIMEOUT,
                message=f"attempt exceeded {limit:.3f}s",
                raw=exc,
            ) from exc
        except TransportError as exc:
            connection = exc.kind is TransportErrorKind.CONNECTION
            raise _AttemptFailure(
                transient=connection,
                code=ErrorCode.CONNECTION if connection else ErrorCode.PROTOCOL,
                message=exc.message,
                raw=exc,
            ) from exc

        if 200 <= response.status < 300:
            return response
        body = await read_all(response.stream)
        detail = parse_error_body(body) or f"HTTP {response.status}"
        raise _AttemptFailure(
            transient=is_transient_status(response.status),
            code=classify_status(response.status),
            message=detail,
            status=response.status,
            retry_after=parse_retry_after(response.header("retry-after")),
        )

    async def _sleep(self, delay: float, token: Optional[CancellationToken], attempts: int) -> None:
        try:
            if token is not None:
                await token.guard(self._clock.sleep(delay))
            else:
                await self._clock.sleep(delay)
        except CancelledError as exc:
            raise self._cancelled(attempts, exc) from exc

    # --------------------------------------------------------------- helpers
    def _remaining(self, deadline: Optional[float]) -> Optional[float]:
        if deadline is None:
            return None
        return deadline - self._clock.now()

    def _check_deadline(self, deadline: Optional[float], attempts: int, ctx: Optional[LogContext]) -> None:
        remaining = self._remaining(deadline)
        if remaining is not None and remaining <= 0:
            self._raise_timeout(attempts, ctx)

    def _raise_timeout(
        self,
        attempts: int,
        ctx: Optional[LogContext],
        *,
        cause: Optional[_AttemptFailure] = None,
    ) -> None:
        message = f"overall deadline of {self._timeouts.overall_seconds}s exceeded"
        if cause is not None:
            message = f"{message} (last failure: {cause.message})"
        err = DispatchError(
            message=message,
            kind=DispatchErrorKind.TIMEOUT,
            code=ErrorCode.TIMEOUT,
            status=cause.status if cause is not None else None,
            attempts=attempts,
            retry_after=cause.retry_after if cause is not None else None,
        )
        self._log_error(err, ctx)
        raise err

    def _check_cancelled(self, token: Optional[CancellationToken], attempts: int) -> None:
        if token is None:
            return
        try:
            token.raise_if_cancelled()
        except CancelledError as exc:
            raise self._cancelled(attempts, exc) from exc

    def _cancelled(self, attempts: int, exc: CancelledError) -> DispatchError:
        return DispatchError.cancelled(exc, attempts)

    def _error(
        self,
        kind: DispatchErrorKind,
        failure: _AttemptFailure,
        attempts: int,
        ctx: Optional[LogContext],
    ) -> DispatchError:
        err = DispatchError(
            message=failure.message,
            kind=kind,
            code=failure.code,
            status=failure.status,
            attempts=attempts,
            retry_after=failure.retry_after,
            raw=failure.raw,
        )
        self._log_error(err, ctx)
        return err

    def _log_error(self, err: DispatchError, ctx: Optional[LogContext]) -> None:
        normalized_log_event(
            self._logger,
            "dispatch.error",
            ctx,
            phase="dispatch",
            attempt=err.attempts,
            error_code=err.code.value,
            emitted=False,
            level=logging.WARNING,
            kind=err.kind.value,
            status=err.status,
            detail=err.message,
        )

    def _notify(
        self,
        attempt: int,
        max_attempts: int,
        delay: Optional[float],
        failure: Optional[_AttemptFailure],
    ) -> None:
        if self._retry.attempt_logger is None:
            return
        error = None
        if failure is not None:
            error = DispatchError(
                message=failure.message,
                kind=DispatchErrorKind.TRANSIENT if failure.transient else DispatchErrorKind.PERMANENT,
                code=failure.code,
                status=failure.status,
                attempts=attempt,
                retry_after=failure.retry_after,
            )
        self._retry.attempt_logger(attempt=attempt, max_attempts=max_attempts, delay=delay, error=error)


__all__ = ["Dispatcher", "parse_error_body"]
