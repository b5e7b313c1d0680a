"""Fold generation events into an :class:`AggregatedResponse`.

Folding rules:
    - consecutive ``TextDelta``s concatenate into one ``Text`` part;
    - ``FunctionCallDelta`` fragments accumulate until the call is closed by
      a closed delta, a delta for another function, a content event
      (text or whole part), a ``FinishReasonEvent``, or the end of the
      sequence; the joined fragments are then parsed as JSON;
    - the first ``UsageMetadataEvent``, ``FinishReasonEvent`` and
      ``PromptFeedbackEvent`` win; the latest ``SafetyRatingsEvent`` wins;
      metadata events do not split text runs or close pending calls
      (except finish, which ends generation);
    - ``ThoughtDelta``s collect into ``thoughts``, apart from the answer text;
    - an ``ErrorEvent`` raises :class:`DecodeError`.

With a response schema the final text is parsed as JSON and validated;
function call arguments are validated against the declared parameter
schema of their function. Violations raise :class:`SchemaMismatch`.
"""
from __future__ import annotations

import json
from typing import Any, AsyncIterable, Dict, Iterable, List, Mapping, Optional, Tuple

from ..errors import DecodeError, DecodeErrorKind, SchemaIssue, SchemaMismatch, ValidationError
from ..models import (
    AggregatedResponse,
    FinishReason,
    FunctionCall,
    GenerateContentRequest,
    PromptFeedback,
    Role,
    SafetyRating,
    Text,
    Turn,
    UsageMetadata,
)
from ..schema import ROOT, ObjectSchema, SchemaNode, check
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


class ResponseAggregator:
    """Single-consumer fold over one response's events."""

    def __init__(
        self,
        response_schema: Optional[SchemaNode] = None,
        function_schemas: Optional[Mapping[str, ObjectSchema]] = None,
    ) -> None:
        self._schema = response_schema
        self._function_schemas: Dict[str, ObjectSchema] = dict(function_schemas or {})
        self._parts: List[Any] = []
        self._text: Optional[List[str]] = None
        self._call_name: Optional[str] = None
        self._call_fragments: List[str] = []
        self._usage: Optional[UsageMetadata] = None
        self._finish: Optional[FinishReason] = None
        self._feedback: Optional[PromptFeedback] = None
        self._ratings: Tuple[SafetyRating, ...] = ()
        self._thoughts: List[str] = []
        self._events = 0

    @classmethod
    def for_request(cls, request: GenerateContentRequest) -> "ResponseAggregator":
        return cls(request.response_schema, request.function_schemas())

    @property
    def events_seen(self) -> int:
        return self._events

    # ---------------------------------------------------------------- fold
    def feed(self, event: GenerationEvent) -> None:
        self._events += 1
        if isinstance(event, TextDelta):
            self._close_call()
            if self._text is None:
                self._text = []
            self._text.append(event.text)
        elif isinstance(event, FunctionCallDelta):
            self._flush_text()
            if self._call_name is not None and self._call_name != event.name:
                self._close_call()
            self._call_name = event.name
            self._call_fragments.append(event.arguments_fragment)
            if event.closed:
                self._close_call()
        elif isinstance(event, PartEvent):
            self._flush_text()
            self._close_call()
            self._parts.append(event.part)
        elif isinstance(event, UsageMetadataEvent):
            if self._usage is None:
                self._usage = event.usage
        elif isinstance(event, FinishReasonEvent):
            self._close_call()
            if self._finish is None:
                self._finish = event.reason
        elif isinstance(event, ThoughtDelta):
            self._thoughts.append(event.text)
        elif isinstance(event, PromptFeedbackEvent):
            if self._feedback is None:
                self._feedback = event.feedback
        elif isinstance(event, SafetyRatingsEvent):
            self._ratings = event.ratings
        elif isinstance(event, ErrorEvent):
            raise DecodeError(message=event.message, kind=event.kind, fragment=event.fragment)
        else:
            raise TypeError(f"not a generation event: {type(event).__name__}")

    def result(self) -> AggregatedResponse:
        """Finish the fold and return the validated response."""
        self._flush_text()
        self._close_call()
        turns = ()
        if self._parts:
            try:
                turns = (Turn(Role.MODEL, tuple(self._parts)),)
            except ValidationError as exc:
                raise DecodeError(message=f"response turn is invalid: {exc.message}", kind=DecodeErrorKind.MALFORMED) from exc
        response = AggregatedResponse(
            turns=turns,
            usage=self._usage,
            finish_reason=self._finish,
            prompt_feedback=self._feedback,
            safety_ratings=self._ratings,
            thoughts="".join(self._thoughts),
        )
        validate_response(response, self._schema, self._function_schemas)
        return response

    def fold(self, events: Iterable[GenerationEvent]) -> AggregatedResponse:
        for event in events:
            self.feed(event)
        return self.result()

    async def afold(self, events: AsyncIterable[GenerationEvent]) -> AggregatedResponse:
        async for event in events:
            self.feed(event)
        return self.result()

    # ------------------------------------------------------------- helpers
    def _flush_text(self) -> None:
        if self._text is not None:
            self._parts.append(Text("".join(self._text)))
            self._text = None

    def _close_call(self) -> None:
        if self._call_name is None:
            return
        name = self._call_name
        raw = "".join(self._call_fragments)
        self._call_name = None
        self._call_fragments = []
        try:
            args = json.loads(raw) if raw.strip() else {}
        except ValueError as exc:
            raise DecodeError(
                message=f"arguments of function call {name!r} are not valid JSON: {exc}",
                kind=DecodeErrorKind.MALFORMED,
                fragment=raw,
            ) from exc
        self._parts.append(FunctionCall(name, args))


def validate_response(
    response: AggregatedResponse,
    response_schema: Optional[SchemaNode] = None,
    function_schemas: Optional[Mapping[str, ObjectSchema]] = None,
) -> None:
    """Check structured output and function call arguments.

    Text is only checked against ``response_schema`` when the response holds
    no function calls (a call turn carries no final answer). A response with
    no content at all (blocked prompt, safety stop) is reported as such
    rather than as unparseable text.

    Raises:
        SchemaMismatch: aggregating every issue found.
    """
    issues: List[SchemaIssue] = []
    schemas = function_schemas or {}
    for call in response.function_calls:
        schema = schemas.get(call.name)
        if schema is not None:
            issues += check(call.args, schema, f"{ROOT}.{call.name}")
    missing = response.missing_content_reason()
    if response_schema is not None and missing is not None:
        issues.append(SchemaIssue(ROOT, "JSON document", missing))
    elif response_schema is not None and not response.function_calls:
        try:
            value = json.loads(response.text)
        except ValueError as exc:
            issues.append(SchemaIssue(ROOT, "JSON document", f"unparseable text ({exc})"))
        else:
            issues += check(value, response_schema)
    if issues:
        raise SchemaMismatch(issues=issues)


def fold_events(
    events: Iterable[GenerationEvent],
    request: Optional[GenerateContentRequest] = None,
) -> AggregatedResponse:
    """Fold ``events``; with ``request`` its schemas are enforced."""
    aggregator = ResponseAggregator.for_request(request) if request is not None else ResponseAggregator()
    return aggregator.fold(events)


__all__ = ["ResponseAggregator", "fold_events", "validate_response"]
