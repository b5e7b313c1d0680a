"""Streaming response decoder.

Purpose
-------
Reconstruct complete response units from an ordered byte stream whose chunk
boundaries are arbitrary, and convert each unit into generation events.

States
------
``AWAITING_FRAME``  no significant byte seen yet; framing unknown.
``PARSING``         framing detected; scanning for the end of the next unit.
``EMITTING``        a complete unit is being converted into events.
``DONE``            end-of-stream reached cleanly.
``FAILED``          an ``ErrorEvent`` was produced; nothing follows.

Framing is decided from the first non-whitespace byte: ``[`` (streamed JSON
array), ``{`` (concatenated / newline-delimited objects) or an SSE field
name / comment (``data:``, ``:``). Objects are delimited by a balanced-brace
scan that tracks string and escape state, so the scanner never re-reads
bytes and feeding one byte at a time yields exactly the events of feeding
the whole body at once.

The synchronous core (:class:`StreamDecoder`) does no I/O; :func:`decode_stream`
drives it from a :class:`ByteStream` as a pull-based async iterator.
"""
from __future__ import annotations

import json
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..cancellation import CancellationToken, CancelledError
from ..dto import FunctionCallDTO, GenerateContentResponseDTO, PartDTO, ServiceErrorDTO, UsageMetadataDTO
from ..errors import DecodeErrorKind, DispatchError, TransportError, ValidationError
from ..http.transport import ByteStream
from ..models import FinishReason
from .events import (
    ErrorEvent,
    FinishReasonEvent,
    FunctionCallDelta,
    GenerationEvent,
    PartEvent,
    PromptFeedbackEvent,
    SafetyRatingsEvent,
    TextDelta,
    ThoughtDelta,
    UsageMetadataEvent,
)

_WHITESPACE = b" \t\r\n"
_BOM = b"\xef\xbb\xbf"
_PART_KEYS = (
    "text",
    "inlineData",
    "fileData",
    "functionCall",
    "functionResponse",
    "executableCode",
    "codeExecutionResult",
)
_CHUNK_KEYS = ("candidates", "promptFeedback", "modelVersion", "responseId")
_SSE_DONE = "[DONE]"


class DecoderState(str, Enum):
    AWAITING_FRAME = "awaiting_frame"
    PARSING = "parsing"
    EMITTING = "emitting"
    DONE = "done"
    FAILED = "failed"


class Framing(str, Enum):
    ARRAY = "array"
    OBJECTS = "objects"
    SSE = "sse"


class _MalformedUnit(Exception):
    def __init__(self, message: str, fragment: str) -> None:
        super().__init__(message)
        self.message = message
        self.fragment = fragment


def _function_call_events(call: FunctionCallDTO) -> List[GenerationEvent]:
    if call.is_fragment:
        return [FunctionCallDelta(call.name, call.args_fragment or "", closed=call.will_continue is False)]
    args = call.args if call.args is not None else {}
    return [FunctionCallDelta(call.name, json.dumps(args, ensure_ascii=False), closed=True)]


def _part_events(part: PartDTO) -> List[GenerationEvent]:
    if part.function_call is not None:
        return _function_call_events(part.function_call)
    if part.text is not None:
        return [ThoughtDelta(part.text) if part.thought else TextDelta(part.text)]
    if part.is_empty():
        return []
    return [PartEvent(part.to_part())]


def events_from_unit(unit: Dict[str, Any]) -> List[GenerationEvent]:
    """Convert one decoded response unit into events.

    Accepts a full response chunk (first candidate only) or a flat shorthand
    object (``{"text": ..}``, ``{"functionCall": ..}``, ``{"finishReason": ..}``,
    ``{"usageMetadata": ..}``). A unit carrying an ``error`` object yields a
    single ``SERVICE`` error event.

    Raises:
        pydantic.ValidationError / ValidationError: the unit has the wrong shape.
    """
    if isinstance(unit.get("error"), dict):
        err = ServiceErrorDTO.model_validate(unit["error"])
        return [ErrorEvent(DecodeErrorKind.SERVICE, err.describe(), json.dumps(unit, ensure_ascii=False))]

    events: List[GenerationEvent] = []
    if any(key in unit for key in _CHUNK_KEYS):
        chunk = GenerateContentResponseDTO.model_validate(unit)
        if chunk.prompt_feedback is not None and not chunk.prompt_feedback.is_empty():
            events.append(PromptFeedbackEvent(chunk.prompt_feedback.to_feedback()))
        candidate = chunk.first_candidate
        if candidate is not None and candidate.content is not None:
            for part in candidate.content.parts:
                events += _part_events(part)
        if candidate is not None and candidate.safety_ratings:
            events.append(SafetyRatingsEvent(tuple(r.to_rating() for r in candidate.safety_ratings)))
        if chunk.usage_metadata is not None:
            events.append(UsageMetadataEvent(chunk.usage_metadata.to_usage()))
        if candidate is not None and candidate.finish_reason:
            events.append(FinishReasonEvent(FinishReason.parse(candidate.finish_reason)))
        return events

    if any(key in unit for key in _PART_KEYS):
        events += _part_events(PartDTO.model_validate(unit))
    if isinstance(unit.get("usageMetadata"), dict):
        events.append(UsageMetadataEvent(UsageMetadataDTO.model_validate(unit["usageMetadata"]).to_usage()))
    if unit.get("finishReason"):
        events.append(FinishReasonEvent(FinishReason.parse(unit["finishReason"])))
    return events


class StreamDecoder:
    """Incremental decoder; feed bytes, collect events.

    ``feed`` returns the events of every unit completed by the new bytes;
    ``finish`` signals end-of-stream. After an ``ErrorEvent`` (state
    ``FAILED``) both return empty lists.
    """

    def __init__(self) -> None:
        self._state = DecoderState.AWAITING_FRAME
        self._framing: Optional[Framing] = None
        self._buf = bytearray()
        self._pos = 0
        # balanced-brace scanner
        self._unit_start: Optional[int] = None
        self._depth = 0
        self._in_string = False
        self._escape = False
        self._array_closed = False
        # SSE
        self._data_lines: List[str] = []

    @property
    def state(self) -> DecoderState:
        return self._state

    @property
    def framing(self) -> Optional[Framing]:
        return self._framing

    @property
    def finished(self) -> bool:
        return self._state in (DecoderState.DONE, DecoderState.FAILED)

    # ------------------------------------------------------------ public API
    def feed(self, data: bytes) -> List[GenerationEvent]:
        if self.finished or not data:
            return []
        self._buf += data
        events: List[GenerationEvent] = []
        if self._state is DecoderState.AWAITING_FRAME and not self._detect_framing(events):
            return events
        if self._framing is Framing.SSE:
            self._scan_sse(events)
        else:
            self._scan_json(events)
        return events

    def finish(self) -> List[GenerationEvent]:
        if self.finished:
            return []
        events: List[GenerationEvent] = []
        if self._state is DecoderState.AWAITING_FRAME:
            if self._buf.strip(_WHITESPACE) in (b"", _BOM):
                self._state = DecoderState.DONE
            else:
                self._fail(events, DecodeErrorKind.TRUNCATED, "stream ended before framing was known", self._buf)
            return events
        if self._framing is Framing.SSE:
            self._finish_sse(events)
        else:
            rest = bytes(self._buf[self._pos:]) if self._unit_start is None else bytes(self._buf[self._unit_start:])
            if self._unit_start is not None or rest.strip(_WHITESPACE):
                self._fail(events, DecodeErrorKind.TRUNCATED, "stream ended inside a response unit", rest)
            elif self._framing is Framing.ARRAY and not self._array_closed:
                self._fail(events, DecodeErrorKind.TRUNCATED, "stream ended before the response array was closed", rest)
            else:
                self._state = DecoderState.DONE
        return events

    def fail(self, kind: DecodeErrorKind, message: str) -> List[GenerationEvent]:
        """Abort decoding (for example on a broken connection)."""
        if self.finished:
            return []
        events: List[GenerationEvent] = []
        pending = self._buf[self._unit_start:] if self._unit_start is not None else self._buf[self._pos:]
        self._fail(events, kind, message, pending)
        return events

    # ------------------------------------------------------------- internals
    def _fail(self, events: List[GenerationEvent], kind: DecodeErrorKind, message: str, fragment: Any) -> None:
        text = bytes(fragment).decode("utf-8", errors="replace") if not isinstance(fragment, str) else fragment
        events.append(ErrorEvent(kind, message, text or None))
        self._state = DecoderState.FAILED
        self._buf.clear()
        self._data_lines.clear()

    def _detect_framing(self, events: List[GenerationEvent]) -> bool:
        if len(self._buf) < len(_BOM) and _BOM.startswith(bytes(self._buf)):
            return False  # possibly a split byte-order mark
        if self._buf.startswith(_BOM):
            del self._buf[: len(_BOM)]
        i = 0
        while i < len(self._buf) and self._buf[i] in _WHITESPACE:
            i += 1
        if i == len(self._buf):
            return False
        first = self._buf[i : i + 1]
        if first == b"[":
            self._framing = Framing.ARRAY
            self._pos = i + 1
        elif first == b"{":
            self._framing = Framing.OBJECTS
            self._pos = i
        elif first == b":" or first.isalpha():
            self._framing = Framing.SSE
            self._pos = i
        else:
            self._fail(events, DecodeErrorKind.MALFORMED, f"unrecognized stream framing starting with {first!r}", self._buf[i:])
            return False
        self._state = DecoderState.PARSING
        return True

    def _scan_json(self, events: List[GenerationEvent]) -> None:
        buf = self._buf
        i = self._pos
        n = len(buf)
        while i < n and not self.finished:
            c = buf[i]
            if self._unit_start is None:
                if c in _WHITESPACE:
                    i += 1
                    continue
                if self._framing is Framing.ARRAY and not self._array_closed:
                    if c == 0x2C:  # ,
                        i += 1
                        continue
                    if c == 0x5D:  # ]
                        self._array_closed = True
                        i += 1
                        continue
                if c == 0x7B and not self._array_closed:  # {
                    self._unit_start = i
                    self._depth = 1
                    self._in_string = False
                    self._escape = False
                    i += 1
                    continue
                self._fail(events, DecodeErrorKind.MALFORMED, "unexpected data between response units", buf[i:])
                return
            if self._in_string:
                if self._escape:
                    self._escape = False
                elif c == 0x5C:  # backslash
                    self._escape = True
                elif c == 0x22:  # "
                    self._in_string = False
            elif c == 0x22:
                self._in_string = True
            elif c in (0x7B, 0x5B):  # { [
                self._depth += 1
            elif c in (0x7D, 0x5D):  # } ]
                self._depth -= 1
                if self._depth == 0:
                    unit = bytes(buf[self._unit_start : i + 1])
                    self._unit_start = None
                    self._emit(unit, events)
                    if self.finished:
                        return
            i += 1
        self._compact(i)

    def _compact(self, scanned: int) -> None:
        """Drop consumed bytes so the buffer only holds the unit in progress."""
        keep_from = self._unit_start if self._unit_start is not None else scanned
        if keep_from:
            del self._buf[:keep_from]
            if self._unit_start is not None:
                self._unit_start -= keep_from
        self._pos = scanned - keep_from

    def _scan_sse(self, events: List[GenerationEvent]) -> None:
        while not self.finished:
            nl = self._buf.find(b"\n", self._pos)
            if nl < 0:
                break
            raw = bytes(self._buf[self._pos : nl])
            self._pos = nl + 1
            self._sse_line(raw.rstrip(b"\r"), events)
        if not self.finished and self._pos:
            del self._buf[: self._pos]
            self._pos = 0

    def _sse_line(self, raw: bytes, events: List[GenerationEvent]) -> None:
        if not raw:
            self._dispatch_sse(events)
            return
        if raw.startswith(b":"):
            return  # comment
        name, sep, value = raw.partition(b":")
        if not sep:
            return  # field with empty value; nothing we use
        if value.startswith(b" "):
            value = value[1:]
        if name == b"data":
            try:
                self._data_lines.append(value.decode("utf-8"))
            except UnicodeDecodeError:
                self._fail(events, DecodeErrorKind.MALFORMED, "SSE data is not valid UTF-8", value)
        # event:, id:, retry: carry nothing the decoder needs

    def _dispatch_sse(self, events: List[GenerationEvent]) -> None:
        if not self._data_lines:
            return
        payload = "\n".join(self._data_lines)
        self._data_lines = []
        if payload.strip() == _SSE_DONE:
            return
        self._emit(payload.encode("utf-8"), events)

    def _finish_sse(self, events: List[GenerationEvent]) -> None:
        partial = bytes(self._buf[self._pos:])
        if partial.strip(_WHITESPACE):
            self._fail(events, DecodeErrorKind.TRUNCATED, "stream ended inside an SSE line", partial)
            return
        self._dispatch_sse(events)
        if not self.finished:
            self._state = DecoderState.DONE

    def _emit(self, unit: bytes, events: List[GenerationEvent]) -> None:
        self._state = DecoderState.EMITTING
        try:
            produced = self._convert(unit)
        except _MalformedUnit as exc:
            self._fail(events, DecodeErrorKind.MALFORMED, exc.message, exc.fragment)
            return
        for event in produced:
            events.append(event)
            if isinstance(event, ErrorEvent):
                self._state = DecoderState.FAILED
                self._buf.clear()
                self._data_lines.clear()
                return
        self._state = DecoderState.PARSING

    @staticmethod
    def _convert(unit: bytes) -> List[GenerationEvent]:
        try:
            text = unit.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise _MalformedUnit(f"response unit is not valid UTF-8: {exc}", unit.decode("utf-8", errors="replace")) from exc
        try:
            value = json.loads(text)
        except ValueError as exc:
            raise _MalformedUnit(f"invalid JSON: {exc}", text) from exc
        items = value if isinstance(value, list) else [value]
        events: List[GenerationEvent] = []
        for item in items:
            if not isinstance(item, dict):
                raise _MalformedUnit(f"response unit must be an object, got {type(item).__name__}", text)
            try:
                events += events_from_unit(item)
            except (PydanticValidationError, ValidationError) as exc:
                raise _MalformedUnit(f"unexpected response shape: {exc}", text) from exc
        return events


async def decode_stream(
    stream: ByteStream,
    *,
    cancellation_token: Optional[CancellationToken] = None,
    decoder: Optional[StreamDecoder] = None,
    attempts: int = 0,
) -> AsyncIterator[GenerationEvent]:
    """Pull bytes from ``stream`` and yield events as units complete.

    The next read is only issued once every event of the previous chunk has
    been consumed. The stream is closed when decoding ends, fails, or the
    iterator is closed or cancelled (the connection is dropped, not reused).
    A broken connection mid-stream yields a ``TRUNCATED`` error event.

    Raises:
        DispatchError: ``CANCELLED`` when ``cancellation_token`` fired while
            waiting for bytes; ``attempts`` is reported on it.
    """
    decoder = decoder or StreamDecoder()
    try:
        while not decoder.finished:
            try:
                if cancellation_token is not None:
                    chunk = await cancellation_token.guard(stream.read())
                else:
                    chunk = await stream.read()
            except CancelledError as exc:
                raise DispatchError.cancelled(exc, attempts) from exc
            except TransportError as exc:
                for event in decoder.fail(DecodeErrorKind.TRUNCATED, f"connection lost: {exc.message}"):
                    yield event
                break
            events = decoder.feed(chunk) if chunk else decoder.finish()
            for event in events:
                yield event
    finally:
        await stream.aclose()


__all__ = ["DecoderState", "Framing", "StreamDecoder", "decode_stream", "events_from_unit"]
