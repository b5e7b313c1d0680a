"""Shared fakes for the gemini_ox test suite.

Purpose:
    Keep transport and clock doubles in one importable place
    (``gemini_ox.tests.utils``) so individual test modules stay focused on
    the behavior under test.

Exports:
    - FakeClock: deterministic clock; ``sleep`` records the delay, advances
      virtual time and yields to the event loop once.
    - FakeTransport: scripted transport returning queued outcomes and
      recording every request it saw.
    - response(): build a canned ``TransportResponse``.
    - ListHandler: logging handler capturing JSON events.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from gemini_ox.base.http import MemoryByteStream, TransportResponse


class FakeClock:
    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self.sleeps: List[float] = []

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self._now += max(0.0, seconds)
        await asyncio.sleep(0)


def response(
    status: int = 200,
    body: Union[bytes, str, Dict[str, Any], List[bytes]] = b"",
    headers: Optional[Mapping[str, str]] = None,
) -> TransportResponse:
    """Build a canned transport response; a list body is served chunk by chunk."""
    if isinstance(body, dict):
        chunks = [json.dumps(body).encode("utf-8")]
    elif isinstance(body, str):
        chunks = [body.encode("utf-8")]
    elif isinstance(body, list):
        chunks = list(body)
    else:
        chunks = [body]
    return TransportResponse(status=status, headers=dict(headers or {}), stream=MemoryByteStream(chunks))


Scripted = Union[TransportResponse, BaseException, Callable[[], Any]]


class FakeTransport:
    """Transport returning scripted outcomes in order (the last one repeats).

    An outcome may be a response, an exception to raise, or a zero-argument
    callable (sync or async) producing either.
    """

    def __init__(self, *outcomes: Scripted) -> None:
        self._outcomes = list(outcomes)
        self.requests: List[Dict[str, Any]] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def send(self, method, url, headers, body):
        self.requests.append({"method": method, "url": url, "headers": dict(headers), "body": body})
        index = min(len(self.requests), len(self._outcomes)) - 1
        outcome = self._outcomes[index]
        if callable(outcome) and not isinstance(outcome, (TransportResponse, BaseException)):
            outcome = outcome()
            if asyncio.iscoroutine(outcome):
                outcome = await outcome
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def json_body(self, index: int = -1) -> Dict[str, Any]:
        return json.loads(self.requests[index]["body"])


class ListHandler(logging.Handler):
    """Capture log records into a list for assertions."""

    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.records: List[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)

    def events(self, name: Optional[str] = None) -> List[Dict[str, Any]]:
        out = []
        for record in self.records:
            try:
                payload = json.loads(record.getMessage())
            except ValueError:
                continue
            if name is None or payload.get("event") == name:
                out.append(payload)
        return out


__all__ = ["FakeClock", "FakeTransport", "ListHandler", "response"]
