"""Rate-limited retrying dispatcher."""

from __future__ import annotations

import asyncio

import pytest

from gemini_ox.base.cancellation import CancellationToken
from gemini_ox.base.dispatch import Dispatcher, SerializedRequest, parse_error_body
from gemini_ox.base.errors import (
    DispatchError,
    DispatchErrorKind,
    ErrorCode,
    TransportError,
    TransportErrorKind,
)
from gemini_ox.base.resilience import RetryConfig, TokenBucket
from gemini_ox.base.timeouts import TimeoutConfig
from gemini_ox.tests.utils import FakeTransport, response

URL = "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash:generateContent"
NO_TIMEOUTS = TimeoutConfig(overall_seconds=None, attempt_seconds=None)


def _request(**kwargs) -> SerializedRequest:
    kwargs.setdefault("retry_safe", True)
    return SerializedRequest(method="POST", url=URL, headers={"x-goog-api-key": "k"}, body=b"{}", **kwargs)


def _dispatcher(transport, clock, *, retry=None, timeouts=NO_TIMEOUTS, limiter=None) -> Dispatcher:
    return Dispatcher(
        transport,
        clock=clock,
        limiter=limiter,
        retry=retry or RetryConfig(max_attempts=3, base_delay=1.0, max_delay=30.0, jitter=0.0),
        timeouts=timeouts,
    )


def _dispatch_error(dispatcher, request, token=None) -> DispatchError:
    with pytest.raises(DispatchError) as info:
        asyncio.run(dispatcher.dispatch(request, token))
    return info.value


def test_success_returns_unread_stream(fake_clock):
    transport = FakeTransport(response(200, b'{"ok": true}', {"Content-Type": "application/json"}))
    dispatcher = _dispatcher(transport, fake_clock)

    async def scenario():
        result = await dispatcher.dispatch(_request())
        return result, await result.read_all()

    result, body = asyncio.run(scenario())
    assert result.status == 200  # nosec B101 - asserts are appropriate in unit tests
    assert result.attempts == 1  # nosec B101 - asserts are appropriate in unit tests
    assert result.started_at == 1000.0  # nosec B101 - asserts are appropriate in unit tests
    assert result.header("content-type") == "application/json"  # nosec B101 - asserts are appropriate in unit tests
    assert body == b'{"ok": true}'  # nosec B101 - asserts are appropriate in unit tests
    assert transport.requests[0]["headers"] == {"x-goog-api-key": "k"}  # nosec B101 - asserts are appropriate in unit tests


def test_persistent_server_error_exhausts_attempts(fake_clock):
    transport = FakeTransport(lambda: response(500, b"internal"))
    err = _dispatch_error(_dispatcher(transport, fake_clock), _request())
    assert err.kind is DispatchErrorKind.TRANSIENT  # nosec B101 - asserts are appropriate in unit tests
    assert err.code is ErrorCode.SERVER_ERROR  # nosec B101 - asserts are appropriate in unit tests
    assert err.status == 500  # nosec B101 - asserts are appropriate in unit tests
    assert err.attempts == 3  # nosec B101 - asserts are appropriate in unit tests
    assert err.message == "internal"  # nosec B101 - asserts are appropriate in unit tests
    assert transport.calls == 3  # nosec B101 - asserts are appropriate in unit tests
    assert fake_clock.sleeps == [1.0, 2.0]  # nosec B101 - asserts are appropriate in unit tests


def test_retry_after_is_honored(fake_clock):
    transport = FakeTransport(response(429, b"", {"Retry-After": "7"}), response(200, b"{}"))
    retry = RetryConfig(max_attempts=3, base_delay=1.0, max_delay=30.0, jitter=0.1, rng=lambda: 0.0)
    result = asyncio.run(_dispatcher(transport, fake_clock, retry=retry).dispatch(_request()))
    assert result.attempts == 2  # nosec B101 - asserts are appropriate in unit tests
    assert fake_clock.sleeps == [7.0]  # nosec B101 - asserts are appropriate in unit tests
    assert result.started_at == 1007.0  # nosec B101 - asserts are appropriate in unit tests


def test_client_error_is_permanent_and_not_retried(fake_clock):
    body = {"error": {"code": 400, "message": "API key not valid.", "status": "INVALID_ARGUMENT"}}
    transport = FakeTransport(response(400, body))
    err = _dispatch_error(_dispatcher(transport, fake_clock), _request())
    assert err.kind is DispatchErrorKind.PERMANENT  # nosec B101 - asserts are appropriate in unit tests
    assert err.code is ErrorCode.VALIDATION  # nosec B101 - asserts are appropriate in unit tests
    assert err.attempts == 1  # nosec B101 - asserts are appropriate in unit tests
    assert "INVALID_ARGUMENT: API key not valid." in err.message  # nosec B101 - asserts are appropriate in unit tests
    assert transport.calls == 1  # nosec B101 - asserts are appropriate in unit tests
    assert fake_clock.sleeps == []  # nosec B101 - asserts are appropriate in unit tests


def test_connection_error_is_retried(fake_clock):
    transport = FakeTransport(
        TransportError(TransportErrorKind.CONNECTION, "connection reset"),
        response(200, b"{}"),
    )
    result = asyncio.run(_dispatcher(transport, fake_clock).dispatch(_request()))
    assert result.attempts == 2  # nosec B101 - asserts are appropriate in unit tests
    assert fake_clock.sleeps == [1.0]  # nosec B101 - asserts are appropriate in unit tests


def test_protocol_error_is_permanent(fake_clock):
    transport = FakeTransport(TransportError(TransportErrorKind.PROTOCOL, "bad framing"))
    err = _dispatch_error(_dispatcher(transport, fake_clock), _request())
    assert err.kind is DispatchErrorKind.PERMANENT  # nosec B101 - asserts are appropriate in unit tests
    assert err.code is ErrorCode.PROTOCOL  # nosec B101 - asserts are appropriate in unit tests
    assert transport.calls == 1  # nosec B101 - asserts are appropriate in unit tests


def test_attempt_timeout_is_transient(fake_clock):
    async def hang():
        await asyncio.sleep(5)
        return response(200)

    transport = FakeTransport(hang)
    retry = RetryConfig(max_attempts=2, base_delay=0.0, max_delay=0.0, jitter=0.0)
    timeouts = TimeoutConfig(overall_seconds=None, attempt_seconds=0.05)
    err = _dispatch_error(_dispatcher(transport, fake_clock, retry=retry, timeouts=timeouts), _request())
    assert err.kind is DispatchErrorKind.TRANSIENT  # nosec B101 - asserts are appropriate in unit tests
    assert err.code is ErrorCode.TIMEOUT  # nosec B101 - asserts are appropriate in unit tests
    assert err.attempts == 2  # nosec B101 - asserts are appropriate in unit tests


def test_backoff_past_deadline_times_out(fake_clock):
    transport = FakeTransport(lambda: response(503, b"", {"Retry-After": "10"}))
    timeouts = TimeoutConfig(overall_seconds=5.0, attempt_seconds=None)
    err = _dispatch_error(_dispatcher(transport, fake_clock, timeouts=timeouts), _request())
    assert err.kind is DispatchErrorKind.TIMEOUT  # nosec B101 - asserts are appropriate in unit tests
    assert err.code is ErrorCode.TIMEOUT  # nosec B101 - asserts are appropriate in unit tests
    assert err.status == 503  # nosec B101 - asserts are appropriate in unit tests
    assert transport.calls == 1  # nosec B101 - asserts are appropriate in unit tests
    assert fake_clock.sleeps == []  # nosec B101 - asserts are appropriate in unit tests


def test_cancelled_before_start_sends_nothing(fake_clock):
    transport = FakeTransport(response(200))
    token = CancellationToken()
    token.cancel("not needed")
    err = _dispatch_error(_dispatcher(transport, fake_clock), _request(), token)
    assert err.kind is DispatchErrorKind.CANCELLED  # nosec B101 - asserts are appropriate in unit tests
    assert err.code is ErrorCode.CANCELLED  # nosec B101 - asserts are appropriate in unit tests
    assert err.attempts == 0  # nosec B101 - asserts are appropriate in unit tests
    assert transport.calls == 0  # nosec B101 - asserts are appropriate in unit tests


def test_cancel_during_send(fake_clock):
    async def hang():
        await asyncio.sleep(30)
        return response(200)

    transport = FakeTransport(hang)
    dispatcher = _dispatcher(transport, fake_clock)
    token = CancellationToken()

    async def scenario():
        asyncio.get_running_loop().call_later(0.01, token.cancel, "stop")
        await asyncio.wait_for(dispatcher.dispatch(_request(), token), timeout=5)

    with pytest.raises(DispatchError) as info:
        asyncio.run(scenario())
    assert info.value.kind is DispatchErrorKind.CANCELLED  # nosec B101 - asserts are appropriate in unit tests
    assert transport.calls == 1  # nosec B101 - asserts are appropriate in unit tests


def test_cancel_during_backoff_stops_retrying(fake_clock):
    token = CancellationToken()

    def fail_then_cancel():
        token.cancel("enough")
        return response(503)

    transport = FakeTransport(fail_then_cancel)
    err = _dispatch_error(_dispatcher(transport, fake_clock), _request(), token)
    assert err.kind is DispatchErrorKind.CANCELLED  # nosec B101 - asserts are appropriate in unit tests
    assert err.attempts == 1  # nosec B101 - asserts are appropriate in unit tests
    assert transport.calls == 1  # nosec B101 - asserts are appropriate in unit tests


def test_non_idempotent_request_gets_one_attempt(fake_clock):
    transport = FakeTransport(lambda: response(500))
    err = _dispatch_error(_dispatcher(transport, fake_clock), _request(retry_safe=False))
    assert err.kind is DispatchErrorKind.TRANSIENT  # nosec B101 - asserts are appropriate in unit tests
    assert err.attempts == 1  # nosec B101 - asserts are appropriate in unit tests
    assert transport.calls == 1  # nosec B101 - asserts are appropriate in unit tests


def test_idempotent_methods_are_retryable():
    assert SerializedRequest("GET", URL).retryable is True  # nosec B101 - asserts are appropriate in unit tests
    assert SerializedRequest("POST", URL).retryable is False  # nosec B101 - asserts are appropriate in unit tests
    assert SerializedRequest("POST", URL, idempotent=True).retryable is True  # nosec B101 - asserts are appropriate in unit tests


def test_concurrent_dispatches_share_the_bucket(fake_clock):
    transport = FakeTransport(lambda: response(200))
    limiter = TokenBucket(1, 1.0, fake_clock)
    dispatcher = _dispatcher(transport, fake_clock, limiter=limiter)

    async def scenario():
        return await asyncio.gather(dispatcher.dispatch(_request()), dispatcher.dispatch(_request()))

    first, second = asyncio.run(scenario())
    assert abs(second.started_at - first.started_at) >= 1.0  # nosec B101 - asserts are appropriate in unit tests


def test_failed_attempts_also_pay_for_admission(fake_clock):
    transport = FakeTransport(lambda: response(500))
    limiter = TokenBucket(1, 0.5, fake_clock)
    retry = RetryConfig(max_attempts=2, base_delay=1.0, max_delay=30.0, jitter=0.0)
    _dispatch_error(_dispatcher(transport, fake_clock, retry=retry, limiter=limiter), _request())
    # 1s backoff, then 1s more for the bucket to refill
    assert fake_clock.sleeps == [1.0, 1.0]  # nosec B101 - asserts are appropriate in unit tests


def test_attempt_logger_sees_every_attempt(fake_clock):
    seen = []

    def record(*, attempt, max_attempts, delay, error):
        seen.append((attempt, max_attempts, delay, error.code if error else None))

    transport = FakeTransport(response(503), response(200))
    retry = RetryConfig(max_attempts=3, base_delay=2.0, max_delay=30.0, jitter=0.0, attempt_logger=record)
    asyncio.run(_dispatcher(transport, fake_clock, retry=retry).dispatch(_request()))
    assert seen == [(1, 3, 2.0, ErrorCode.UNAVAILABLE), (2, 3, None, None)]  # nosec B101 - asserts are appropriate in unit tests


def test_dispatch_events_are_logged(fake_clock, log_records):
    transport = FakeTransport(response(503), response(200))
    asyncio.run(_dispatcher(transport, fake_clock).dispatch(_request()))
    attempts = log_records.events("dispatch.attempt")
    assert [(e["attempt"], e["emitted"], e["error_code"]) for e in attempts] == [  # nosec B101 - asserts are appropriate in unit tests
        (1, False, "unavailable"),
        (2, True, None),
    ]
    (retry,) = log_records.events("dispatch.retry")
    assert retry["delay"] == 1.0  # nosec B101 - asserts are appropriate in unit tests
    assert retry["phase"] == "backoff"  # nosec B101 - asserts are appropriate in unit tests


def test_dispatch_error_is_logged(fake_clock, log_records):
    transport = FakeTransport(response(404, b"nope"))
    _dispatch_error(_dispatcher(transport, fake_clock), _request())
    (event,) = log_records.events("dispatch.error")
    assert event["kind"] == "permanent"  # nosec B101 - asserts are appropriate in unit tests
    assert event["error_code"] == "not_found"  # nosec B101 - asserts are appropriate in unit tests
    assert event["status"] == 404  # nosec B101 - asserts are appropriate in unit tests


@pytest.mark.parametrize(
    "body,expected",
    [
        (b"", None),
        (b'{"error": {"code": 429, "message": "Quota exceeded", "status": "RESOURCE_EXHAUSTED"}}', "RESOURCE_EXHAUSTED: Quota exceeded"),
        (b'[{"error": {"message": "bad"}}]', "bad"),
        (b"<html>oops</html>", "<html>oops</html>"),
    ],
)
def test_parse_error_body(body, expected):
    assert parse_error_body(body) == expected  # nosec B101 - asserts are appropriate in unit tests
