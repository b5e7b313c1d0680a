"""Pydantic DTOs for the service's wire payloads."""

from .response import (
    CandidateDTO,
    ContentDTO,
    FunctionCallDTO,
    GenerateContentResponseDTO,
    PartDTO,
    PromptFeedbackDTO,
    SafetyRatingDTO,
    ServiceErrorDTO,
    UsageMetadataDTO,
)
from .tool_result import ToolResultDTO

__all__ = [
    "CandidateDTO",
    "ContentDTO",
    "FunctionCallDTO",
    "GenerateContentResponseDTO",
    "PartDTO",
    "PromptFeedbackDTO",
    "SafetyRatingDTO",
    "ServiceErrorDTO",
    "ToolResultDTO",
    "UsageMetadataDTO",
]
