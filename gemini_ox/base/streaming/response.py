"""Single-shot response parsing.

A non-streamed generate payload is one response unit, so it is converted
with the same unit-to-event mapping the stream decoder uses and folded by
the same aggregator. Parsing a payload and folding the events of the
equivalent stream therefore produce equal :class:`AggregatedResponse`s.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ..errors import DecodeError, DecodeErrorKind, ValidationError
from ..models import AggregatedResponse, GenerateContentRequest
from .aggregator import ResponseAggregator
from .decoder import events_from_unit


def _load(payload: Union[bytes, str, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(payload, dict):
        return payload
    if isinstance(payload, (bytes, bytearray)):
        try:
            text = bytes(payload).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(
                message=f"response is not valid UTF-8: {exc}",
                kind=DecodeErrorKind.MALFORMED,
                fragment=bytes(payload).decode("utf-8", errors="replace"),
            ) from exc
    else:
        text = payload
    try:
        value = json.loads(text.lstrip("\ufeff"))
    except ValueError as exc:
        raise DecodeError(message=f"invalid JSON: {exc}", kind=DecodeErrorKind.MALFORMED, fragment=text) from exc
    if not isinstance(value, dict):
        raise DecodeError(
            message=f"response must be an object, got {type(value).__name__}",
            kind=DecodeErrorKind.MALFORMED,
            fragment=text,
        )
    return value


def parse_response(
    payload: Union[bytes, str, Dict[str, Any]],
    request: Optional[GenerateContentRequest] = None,
) -> AggregatedResponse:
    """Parse a complete generate response.

    Args:
        payload: raw body bytes, JSON text, or an already-decoded object.
        request: when given, its response schema and function parameter
            schemas are enforced on the result.

    Raises:
        DecodeError: ``MALFORMED`` for unparseable or wrongly shaped payloads,
            ``SERVICE`` when the payload is a service error object.
        SchemaMismatch: the output violates the request's schemas.
    """
    unit = _load(payload)
    try:
        events = events_from_unit(unit)
    except (PydanticValidationError, ValidationError) as exc:
        raise DecodeError(
            message=f"unexpected response shape: {exc}",
            kind=DecodeErrorKind.MALFORMED,
            fragment=json.dumps(unit, ensure_ascii=False, default=str),
        ) from exc
    aggregator = ResponseAggregator.for_request(request) if request is not None else ResponseAggregator()
    return aggregator.fold(events)


__all__ = ["parse_response"]
