"""Client facade: serialization, send, stream and their logs."""

from __future__ import annotations

import asyncio
import json

import pytest

from gemini_ox.base.cancellation import CancellationToken
from gemini_ox.base.errors import (
    DecodeError,
    DecodeErrorKind,
    DispatchError,
    DispatchErrorKind,
    ErrorCode,
    SchemaMismatch,
    ValidationError,
)
from gemini_ox.base.http import TransportResponse
from gemini_ox.base.models import FinishReason, FunctionCall, Text, UsageMetadata
from gemini_ox.base.resilience import RetryConfig
from gemini_ox.base.schema import integer, object_of
from gemini_ox.base.streaming import FinishReasonEvent, TextDelta, UsageMetadataEvent
from gemini_ox.base.timeouts import TimeoutConfig
from gemini_ox.config import load_settings
from gemini_ox.gemini import GeminiClient
from gemini_ox.tests.utils import FakeTransport, response

API_KEY = "AIza-unit-key"  # pragma: allowlist secret - fake key
BASE = "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash"
USAGE = {"promptTokenCount": 3, "candidatesTokenCount": 1, "totalTokenCount": 4}
ANSWER = {
    "candidates": [{"content": {"role": "model", "parts": [{"text": "4"}]}, "finishReason": "STOP"}],
    "usageMetadata": USAGE,
}
SSE_CHUNKS = [
    b'data: {"candidates": [{"content": {"role": "model", "parts": [{"text": "4"}]}}]}\r\n\r\n',
    b'data: {"candidates": [{"finishReason": "STOP"}], "usageMe',
    b'tadata": {"promptTokenCount": 3, "candidatesTokenCount": 1, "totalTokenCount": 4}}\r\n\r\n',
]


def _client(transport, clock, **retry) -> GeminiClient:
    retry.setdefault("jitter", 0.0)
    return (
        GeminiClient.builder()
        .with_api_key(API_KEY)
        .with_transport(transport)
        .with_clock(clock)
        .with_retry(RetryConfig(**retry))
        .with_timeouts(TimeoutConfig(overall_seconds=None, attempt_seconds=None))
        .with_default_model("gemini-1.5-flash")
        .build()
    )


def _question(client: GeminiClient):
    return client.request().user_turn("2+2?").build()


async def _collect(iterator):
    return [event async for event in iterator]


def test_serialized_request_shape(fake_clock):
    client = _client(FakeTransport(), fake_clock)
    request = client.request().model("models/gemini-1.5-flash").user_turn("hi").build()
    serialized = client.serialize(request)
    assert serialized.method == "POST"  # nosec B101 - asserts are appropriate in unit tests
    assert serialized.url == f"{BASE}:generateContent"  # nosec B101 - asserts are appropriate in unit tests
    assert serialized.headers == {"x-goog-api-key": API_KEY, "Content-Type": "application/json"}  # nosec B101 - asserts are appropriate in unit tests
    assert serialized.retryable is True  # nosec B101 - asserts are appropriate in unit tests
    assert json.loads(serialized.body)["contents"] == [{"role": "user", "parts": [{"text": "hi"}]}]  # nosec B101 - asserts are appropriate in unit tests
    assert client.endpoint(request, stream=True) == f"{BASE}:streamGenerateContent?alt=sse"  # nosec B101 - asserts are appropriate in unit tests


def test_send(fake_clock):
    transport = FakeTransport(lambda: response(200, ANSWER))
    client = _client(transport, fake_clock)
    result = asyncio.run(client.send(_question(client)))
    assert result.turn.parts == (Text("4"),)  # nosec B101 - asserts are appropriate in unit tests
    assert result.finish_reason is FinishReason.STOP  # nosec B101 - asserts are appropriate in unit tests
    assert result.usage == UsageMetadata(3, 1, 4)  # nosec B101 - asserts are appropriate in unit tests
    sent = transport.requests[0]
    assert sent["url"] == f"{BASE}:generateContent"  # nosec B101 - asserts are appropriate in unit tests
    assert sent["headers"]["x-goog-api-key"] == API_KEY  # nosec B101 - asserts are appropriate in unit tests
    assert transport.json_body()["contents"][0]["parts"] == [{"text": "2+2?"}]  # nosec B101 - asserts are appropriate in unit tests


def test_send_retries_transient_failures(fake_clock):
    transport = FakeTransport(
        lambda: response(503, {"error": {"code": 503, "message": "overloaded", "status": "UNAVAILABLE"}}),
        lambda: response(200, ANSWER),
    )
    client = _client(transport, fake_clock, max_attempts=3, base_delay=1.0)
    result = asyncio.run(client.send(_question(client)))
    assert result.text == "4"  # nosec B101 - asserts are appropriate in unit tests
    assert transport.calls == 2  # nosec B101 - asserts are appropriate in unit tests
    assert fake_clock.sleeps == [1.0]  # nosec B101 - asserts are appropriate in unit tests


def test_send_logs_start_and_end(fake_clock, log_records):
    client = _client(FakeTransport(lambda: response(200, ANSWER)), fake_clock)
    asyncio.run(client.send(_question(client)))
    (start,) = log_records.events("generate.start")
    (end,) = log_records.events("generate.end")
    assert start["model"] == "gemini-1.5-flash"  # nosec B101 - asserts are appropriate in unit tests
    assert start["operation"] == "generate"  # nosec B101 - asserts are appropriate in unit tests
    assert end["request_id"] == start["request_id"]  # nosec B101 - asserts are appropriate in unit tests
    assert end["attempt"] == 1  # nosec B101 - asserts are appropriate in unit tests
    assert end["emitted"] is True  # nosec B101 - asserts are appropriate in unit tests
    assert end["tokens"]["total_token_count"] == 4  # nosec B101 - asserts are appropriate in unit tests
    assert end["finish_reason"] == "STOP"  # nosec B101 - asserts are appropriate in unit tests


def test_send_permanent_failure_is_logged(fake_clock, log_records):
    body = {"error": {"code": 400, "message": "API key not valid", "status": "INVALID_ARGUMENT"}}
    transport = FakeTransport(lambda: response(400, body))
    client = _client(transport, fake_clock)
    with pytest.raises(DispatchError) as info:
        asyncio.run(client.send(_question(client)))
    assert info.value.kind is DispatchErrorKind.PERMANENT  # nosec B101 - asserts are appropriate in unit tests
    assert info.value.code is ErrorCode.VALIDATION  # nosec B101 - asserts are appropriate in unit tests
    assert info.value.status == 400  # nosec B101 - asserts are appropriate in unit tests
    assert transport.calls == 1  # nosec B101 - asserts are appropriate in unit tests
    (event,) = log_records.events("generate.error")
    assert event["error_code"] == "validation"  # nosec B101 - asserts are appropriate in unit tests
    assert log_records.events("generate.end") == []  # nosec B101 - asserts are appropriate in unit tests


def test_send_service_error_payload(fake_clock):
    body = {"error": {"code": 500, "message": "internal", "status": "INTERNAL"}}
    client = _client(FakeTransport(lambda: response(200, body)), fake_clock)
    with pytest.raises(DecodeError) as info:
        asyncio.run(client.send(_question(client)))
    assert info.value.kind is DecodeErrorKind.SERVICE  # nosec B101 - asserts are appropriate in unit tests


def test_send_malformed_body(fake_clock, log_records):
    client = _client(FakeTransport(lambda: response(200, b'{"candidates": [')), fake_clock)
    with pytest.raises(DecodeError) as info:
        asyncio.run(client.send(_question(client)))
    assert info.value.kind is DecodeErrorKind.MALFORMED  # nosec B101 - asserts are appropriate in unit tests
    assert log_records.events("generate.error")[0]["error_code"] == "decode"  # nosec B101 - asserts are appropriate in unit tests


def test_send_enforces_response_schema(fake_clock):
    payload = {"candidates": [{"content": {"role": "model", "parts": [{"text": '{"answer": "four"}'}]}}]}
    client = _client(FakeTransport(lambda: response(200, payload)), fake_clock)
    request = client.request().user_turn("2+2?").response_schema(object_of({"answer": integer()})).build()
    with pytest.raises(SchemaMismatch) as info:
        asyncio.run(client.send(request))
    assert info.value.path == "root.answer"  # nosec B101 - asserts are appropriate in unit tests


def test_cancelled_send_never_reaches_the_transport(fake_clock, log_records):
    transport = FakeTransport(lambda: response(200, ANSWER))
    client = _client(transport, fake_clock)
    token = CancellationToken()
    token.cancel("user abort")
    with pytest.raises(DispatchError) as info:
        asyncio.run(client.send(_question(client), token))
    assert info.value.kind is DispatchErrorKind.CANCELLED  # nosec B101 - asserts are appropriate in unit tests
    assert transport.calls == 0  # nosec B101 - asserts are appropriate in unit tests
    assert log_records.events("generate.error")[0]["error_code"] == "cancelled"  # nosec B101 - asserts are appropriate in unit tests


class _HangingStream:
    """Serves one chunk, then waits for bytes that never come."""

    def __init__(self, head: bytes) -> None:
        self._head = head
        self.closed = False

    async def read(self) -> bytes:
        if self._head:
            head, self._head = self._head, b""
            return head
        await asyncio.sleep(30)
        return b""

    async def aclose(self) -> None:
        self.closed = True


def test_send_cancelled_while_reading_the_body(fake_clock, log_records):
    stream = _HangingStream(b'{"candidates": ')
    client = _client(FakeTransport(lambda: TransportResponse(200, {}, stream)), fake_clock)
    token = CancellationToken()

    async def scenario():
        asyncio.get_running_loop().call_later(0.01, token.cancel, "user abort")
        return await asyncio.wait_for(client.send(_question(client), token), timeout=5)

    with pytest.raises(DispatchError) as info:
        asyncio.run(scenario())
    assert info.value.kind is DispatchErrorKind.CANCELLED  # nosec B101 - asserts are appropriate in unit tests
    assert info.value.attempts == 1  # nosec B101 - asserts are appropriate in unit tests
    assert "user abort" in str(info.value)  # nosec B101 - asserts are appropriate in unit tests
    assert stream.closed is True  # nosec B101 - asserts are appropriate in unit tests
    assert log_records.events("generate.error")[0]["error_code"] == "cancelled"  # nosec B101 - asserts are appropriate in unit tests


def test_stream_cancelled_between_chunks(fake_clock, log_records):
    stream = _HangingStream(SSE_CHUNKS[0])
    client = _client(FakeTransport(lambda: TransportResponse(200, {}, stream)), fake_clock)
    token = CancellationToken()
    seen = []

    async def scenario():
        async for event in client.stream(_question(client), token):
            seen.append(event)
            token.cancel("enough")

    with pytest.raises(DispatchError) as info:
        asyncio.run(scenario())
    assert seen == [TextDelta("4")]  # nosec B101 - asserts are appropriate in unit tests
    assert info.value.code is ErrorCode.CANCELLED  # nosec B101 - asserts are appropriate in unit tests
    assert info.value.attempts == 1  # nosec B101 - asserts are appropriate in unit tests
    assert stream.closed is True  # nosec B101 - asserts are appropriate in unit tests
    error = log_records.events("stream.error")[0]
    assert error["error_code"] == "cancelled"  # nosec B101 - asserts are appropriate in unit tests
    assert error["emitted"] is True  # nosec B101 - asserts are appropriate in unit tests


def test_stream_yields_events_incrementally(fake_clock, log_records):
    transport = FakeTransport(lambda: response(200, list(SSE_CHUNKS)))
    client = _client(transport, fake_clock)
    events = asyncio.run(_collect(client.stream(_question(client))))
    assert events == [  # nosec B101 - asserts are appropriate in unit tests
        TextDelta("4"),
        UsageMetadataEvent(UsageMetadata(3, 1, 4)),
        FinishReasonEvent(FinishReason.STOP),
    ]
    assert transport.requests[0]["url"] == f"{BASE}:streamGenerateContent?alt=sse"  # nosec B101 - asserts are appropriate in unit tests
    (end,) = log_records.events("stream.end")
    assert end["events"] == 3  # nosec B101 - asserts are appropriate in unit tests
    assert end["emitted"] is True  # nosec B101 - asserts are appropriate in unit tests


def test_stream_dispatches_lazily(fake_clock):
    transport = FakeTransport(lambda: response(200, list(SSE_CHUNKS)))
    client = _client(transport, fake_clock)
    client.stream(_question(client))
    assert transport.calls == 0  # nosec B101 - asserts are appropriate in unit tests


def test_stream_early_close_drops_the_connection(fake_clock):
    canned = response(200, list(SSE_CHUNKS))
    client = _client(FakeTransport(canned), fake_clock)

    async def scenario():
        events = client.stream(_question(client))
        first = await events.__anext__()
        await events.aclose()
        return first

    assert asyncio.run(scenario()) == TextDelta("4")  # nosec B101 - asserts are appropriate in unit tests
    assert canned.stream.closed is True  # nosec B101 - asserts are appropriate in unit tests


def test_stream_aggregate_matches_send(fake_clock):
    streamed_client = _client(FakeTransport(lambda: response(200, list(SSE_CHUNKS))), fake_clock)
    sent_client = _client(FakeTransport(lambda: response(200, ANSWER)), fake_clock)
    streamed = asyncio.run(streamed_client.stream_aggregate(_question(streamed_client)))
    sent = asyncio.run(sent_client.send(_question(sent_client)))
    assert streamed == sent  # nosec B101 - asserts are appropriate in unit tests


def test_stream_aggregate_joins_function_call_fragments(fake_clock):
    def chunk(fragment, more):
        part = {"functionCall": {"name": "get_weather", "argsFragment": fragment, "willContinue": more}}
        return ("data: " + json.dumps({"candidates": [{"content": {"role": "model", "parts": [part]}}]}) + "\n\n").encode()

    chunks = [chunk('{"city"', True), chunk(': "Paris"}', False)]
    client = _client(FakeTransport(lambda: response(200, chunks)), fake_clock)
    result = asyncio.run(client.stream_aggregate(_question(client)))
    assert result.function_calls == [FunctionCall("get_weather", {"city": "Paris"})]  # nosec B101 - asserts are appropriate in unit tests


def test_stream_aggregate_truncated(fake_clock):
    chunks = [SSE_CHUNKS[0], SSE_CHUNKS[1]]
    client = _client(FakeTransport(lambda: response(200, chunks)), fake_clock)
    with pytest.raises(DecodeError) as info:
        asyncio.run(client.stream_aggregate(_question(client)))
    assert info.value.kind is DecodeErrorKind.TRUNCATED  # nosec B101 - asserts are appropriate in unit tests


def test_builder_reports_every_problem():
    with pytest.raises(ValidationError) as info:
        GeminiClient.builder().with_api_version(" ").with_base_url("").build()
    assert info.value.violations == [  # nosec B101 - asserts are appropriate in unit tests
        "API key not set",
        "API version must be non-empty",
        "base URL must be non-empty",
    ]


def test_builder_rejects_placeholder_key():
    with pytest.raises(ValidationError) as info:
        GeminiClient.builder().with_api_key("<your key>").build()
    assert info.value.violations == ["API key not set"]  # nosec B101 - asserts are appropriate in unit tests


def test_from_settings(clean_env, fake_clock):
    settings = load_settings(
        {
            "api_key": "AIza-settings-key",
            "model": "gemini-2.0-flash",
            "api_version": "v1",
            "base_url": "http://localhost:9000/",
        }
    )
    transport = FakeTransport(lambda: response(200, ANSWER))
    client = GeminiClient.from_settings(settings, transport=transport, clock=fake_clock)
    assert client.default_model == "gemini-2.0-flash"  # nosec B101 - asserts are appropriate in unit tests
    assert client.base_url == "http://localhost:9000"  # nosec B101 - asserts are appropriate in unit tests
    assert client.api_version == "v1"  # nosec B101 - asserts are appropriate in unit tests
    assert client.dispatcher.retry.max_attempts == 3  # nosec B101 - asserts are appropriate in unit tests
    asyncio.run(client.send(client.request().user_turn("hi").build()))
    assert transport.requests[0]["url"] == "http://localhost:9000/v1/models/gemini-2.0-flash:generateContent"  # nosec B101 - asserts are appropriate in unit tests
    assert transport.requests[0]["headers"]["x-goog-api-key"] == "AIza-settings-key"  # nosec B101 - asserts are appropriate in unit tests


def test_from_settings_without_key(clean_env):
    with pytest.raises(ValidationError) as info:
        GeminiClient.from_settings()
    assert info.value.violations == ["API key not set"]  # nosec B101 - asserts are appropriate in unit tests


def test_context_manager_leaves_injected_transport_open(fake_clock):
    transport = FakeTransport(lambda: response(200, ANSWER))

    async def scenario():
        async with _client(transport, fake_clock) as client:
            return await client.send(_question(client))

    assert asyncio.run(scenario()).text == "4"  # nosec B101 - asserts are appropriate in unit tests
