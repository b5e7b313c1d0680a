"""
Sampling and output configuration for a generate call.

The ``check_*`` helpers validate one field each and return violation strings;
the request builder records them per setter, and
:meth:`GenerationConfig.violations` runs all of them for configs built
directly.
"""
from __future__ import annotations

import numbers
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..schema import SchemaNode, declare
from .part import mime_type_violations

MAX_STOP_SEQUENCES = 5
JSON_MIME_TYPE = "application/json"


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def check_temperature(value: Any) -> List[str]:
    if not _is_number(value) or not 0.0 <= value <= 2.0:
        return [f"temperature must be within [0, 2], got {value!r}"]
    return []


def check_top_p(value: Any) -> List[str]:
    if not _is_number(value) or not 0.0 <= value <= 1.0:
        return [f"top_p must be within [0, 1], got {value!r}"]
    return []


def check_top_k(value: Any) -> List[str]:
    if not _is_int(value) or value <= 0:
        return [f"top_k must be a positive integer, got {value!r}"]
    return []


def check_max_output_tokens(value: Any) -> List[str]:
    if not _is_int(value) or value <= 0:
        return [f"max_output_tokens must be a positive integer, got {value!r}"]
    return []


def check_candidate_count(value: Any) -> List[str]:
    if value != 1 or not _is_int(value):
        return [f"candidate_count must be 1, got {value!r}"]
    return []


def check_stop_sequences(values: Any) -> List[str]:
    if isinstance(values, str) or not isinstance(values, (list, tuple)):
        return ["stop_sequences must be a list of strings"]
    out: List[str] = []
    if len(values) > MAX_STOP_SEQUENCES:
        out.append(f"at most {MAX_STOP_SEQUENCES} stop sequences are allowed, got {len(values)}")
    if any(not isinstance(v, str) or not v for v in values):
        out.append("stop sequences must be non-empty strings")
    return out


def check_response_mime_type(value: Any) -> List[str]:
    return mime_type_violations(value, "response_mime_type")


@dataclass(frozen=True)
class GenerationConfig:
    """Immutable generation configuration; ``None`` fields are omitted on the wire."""

    temperature: Optional[float] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None
    max_output_tokens: Optional[int] = None
    candidate_count: Optional[int] = None
    stop_sequences: Tuple[str, ...] = ()
    response_mime_type: Optional[str] = None
    response_schema: Optional[SchemaNode] = None
    response_json_schema: Optional[Dict[str, Any]] = field(default=None, compare=False)

    def violations(self) -> List[str]:
        out: List[str] = []
        if self.temperature is not None:
            out += check_temperature(self.temperature)
        if self.top_p is not None:
            out += check_top_p(self.top_p)
        if self.top_k is not None:
            out += check_top_k(self.top_k)
        if self.max_output_tokens is not None:
            out += check_max_output_tokens(self.max_output_tokens)
        if self.candidate_count is not None:
            out += check_candidate_count(self.candidate_count)
        if self.stop_sequences:
            out += check_stop_sequences(list(self.stop_sequences))
        if self.response_mime_type is not None:
            out += check_response_mime_type(self.response_mime_type)
        return out

    @property
    def has_output_schema(self) -> bool:
        return self.response_schema is not None or self.response_json_schema is not None

    def is_empty(self) -> bool:
        return not self.to_wire()

    def to_wire(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.stop_sequences:
            out["stopSequences"] = list(self.stop_sequences)
        if self.response_mime_type is not None:
            out["responseMimeType"] = self.response_mime_type
        if self.response_schema is not None:
            out["responseSchema"] = declare(self.response_schema)
        if self.response_json_schema is not None:
            out["responseJsonSchema"] = self.response_json_schema
        if self.candidate_count is not None:
            out["candidateCount"] = self.candidate_count
        if self.max_output_tokens is not None:
            out["maxOutputTokens"] = self.max_output_tokens
        if self.temperature is not None:
            out["temperature"] = self.temperature
        if self.top_p is not None:
            out["topP"] = self.top_p
        if self.top_k is not None:
            out["topK"] = self.top_k
        return out


__all__ = [
    "GenerationConfig",
    "JSON_MIME_TYPE",
    "MAX_STOP_SEQUENCES",
    "check_candidate_count",
    "check_max_output_tokens",
    "check_response_mime_type",
    "check_stop_sequences",
    "check_temperature",
    "check_top_k",
    "check_top_p",
]
