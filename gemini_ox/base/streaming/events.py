"""Generation events: the incremental units of a streamed response.

Events for one response are strictly ordered. ``ErrorEvent`` is terminal: the
decoder yields nothing after it.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from ..errors import DecodeErrorKind
from ..models import FinishReason, Part, PromptFeedback, SafetyRating, UsageMetadata


@dataclass(frozen=True)
class TextDelta:
    text: str


@dataclass(frozen=True)
class ThoughtDelta:
    """Thought-summary text; never part of the answer."""

    text: str


@dataclass(frozen=True)
class FunctionCallDelta:
    """A piece of a function call's JSON arguments.

    ``closed`` marks the last fragment of the call; fragments are only
    required to be valid JSON once concatenated.
    """

    name: str
    arguments_fragment: str
    closed: bool = False


@dataclass(frozen=True)
class UsageMetadataEvent:
    usage: UsageMetadata


@dataclass(frozen=True)
class FinishReasonEvent:
    reason: FinishReason


@dataclass(frozen=True)
class PartEvent:
    """A non-text part (inline data, file, code) that arrived whole."""

    part: Part


@dataclass(frozen=True)
class PromptFeedbackEvent:
    feedback: PromptFeedback


@dataclass(frozen=True)
class SafetyRatingsEvent:
    ratings: Tuple[SafetyRating, ...]


@dataclass(frozen=True)
class ErrorEvent:
    kind: DecodeErrorKind
    message: str
    fragment: Optional[str] = None


GenerationEvent = Union[
    TextDelta,
    ThoughtDelta,
    FunctionCallDelta,
    UsageMetadataEvent,
    FinishReasonEvent,
    PartEvent,
    PromptFeedbackEvent,
    SafetyRatingsEvent,
    ErrorEvent,
]

__all__ = [
    "TextDelta",
    "ThoughtDelta",
    "FunctionCallDelta",
    "UsageMetadataEvent",
    "FinishReasonEvent",
    "PartEvent",
    "PromptFeedbackEvent",
    "SafetyRatingsEvent",
    "ErrorEvent",
    "GenerationEvent",
]
