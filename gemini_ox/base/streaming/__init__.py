"""Streaming decode and response aggregation."""
from .aggregator import ResponseAggregator, fold_events, validate_response
from .decoder import DecoderState, Framing, StreamDecoder, decode_stream, events_from_unit
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
from .response import parse_response

__all__ = [
    "DecoderState",
    "ErrorEvent",
    "FinishReasonEvent",
    "Framing",
    "FunctionCallDelta",
    "GenerationEvent",
    "PartEvent",
    "PromptFeedbackEvent",
    "ResponseAggregator",
    "SafetyRatingsEvent",
    "StreamDecoder",
    "TextDelta",
    "ThoughtDelta",
    "UsageMetadataEvent",
    "decode_stream",
    "events_from_unit",
    "fold_events",
    "parse_response",
    "validate_response",
]
