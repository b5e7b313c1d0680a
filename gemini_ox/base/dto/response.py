"""
Pydantic DTOs for generate responses (single-shot payloads and stream chunks).

Purpose
-------
Validate the camelCase JSON returned by the service before it is converted
into the immutable content model. Unknown keys are ignored so new service
fields do not break decoding; wrong types raise ``pydantic.ValidationError``,
which callers translate into decode errors.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..models import BlockReason, Part, PromptFeedback, SafetyRating, UsageMetadata, part_from_wire


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class FunctionCallDTO(_WireModel):
    """Function call part; streamed calls may carry ``argsFragment`` instead of ``args``."""

    name: str = Field(min_length=1)
    args: Optional[Any] = None
    args_fragment: Optional[str] = None
    will_continue: Optional[bool] = None

    @property
    def is_fragment(self) -> bool:
        return self.args is None and self.args_fragment is not None


class PartDTO(_WireModel):
    text: Optional[str] = None
    inline_data: Optional[Dict[str, Any]] = None
    file_data: Optional[Dict[str, Any]] = None
    function_call: Optional[FunctionCallDTO] = None
    function_response: Optional[Dict[str, Any]] = None
    executable_code: Optional[Dict[str, Any]] = None
    code_execution_result: Optional[Dict[str, Any]] = None
    thought: Optional[bool] = None

    def is_empty(self) -> bool:
        return all(
            getattr(self, name) is None
            for name in (
                "text",
                "inline_data",
                "file_data",
                "function_call",
                "function_response",
                "executable_code",
                "code_execution_result",
            )
        )

    def to_part(self) -> Part:
        """Convert to a content part (fragmented function calls are not parts)."""
        return part_from_wire(self.model_dump(by_alias=True, exclude_none=True))


class ContentDTO(_WireModel):
    role: Optional[str] = None
    parts: List[PartDTO] = Field(default_factory=list)


class SafetyRatingDTO(_WireModel):
    category: str
    probability: str = "NEGLIGIBLE"
    blocked: bool = False

    def to_rating(self) -> SafetyRating:
        return SafetyRating(self.category, self.probability, self.blocked)


class PromptFeedbackDTO(_WireModel):
    block_reason: Optional[str] = None
    safety_ratings: List[SafetyRatingDTO] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return self.block_reason is None and not self.safety_ratings

    def to_feedback(self) -> PromptFeedback:
        reason = BlockReason.parse(self.block_reason) if self.block_reason is not None else None
        return PromptFeedback(reason, tuple(r.to_rating() for r in self.safety_ratings))


class CandidateDTO(_WireModel):
    content: Optional[ContentDTO] = None
    finish_reason: Optional[str] = None
    index: Optional[int] = None
    safety_ratings: List[SafetyRatingDTO] = Field(default_factory=list)


class UsageMetadataDTO(_WireModel):
    prompt_token_count: int = 0
    candidates_token_count: int = 0
    total_token_count: int = 0
    cached_content_token_count: Optional[int] = None

    def to_usage(self) -> UsageMetadata:
        return UsageMetadata(
            prompt_token_count=self.prompt_token_count,
            candidates_token_count=self.candidates_token_count,
            total_token_count=self.total_token_count,
            cached_content_token_count=self.cached_content_token_count,
        )


class ServiceErrorDTO(_WireModel):
    code: Optional[int] = None
    message: str = ""
    status: Optional[str] = None

    def describe(self) -> str:
        prefix = self.status or (str(self.code) if self.code is not None else "error")
        return f"{prefix}: {self.message}" if self.message else prefix


class GenerateContentResponseDTO(_WireModel):
    """Whole response, or one streamed chunk of it."""

    candidates: List[CandidateDTO] = Field(default_factory=list)
    usage_metadata: Optional[UsageMetadataDTO] = None
    prompt_feedback: Optional[PromptFeedbackDTO] = None
    model_version: Optional[str] = None
    error: Optional[ServiceErrorDTO] = None

    @property
    def first_candidate(self) -> Optional[CandidateDTO]:
        return self.candidates[0] if self.candidates else None


__all__ = [
    "FunctionCallDTO",
    "PartDTO",
    "ContentDTO",
    "SafetyRatingDTO",
    "PromptFeedbackDTO",
    "CandidateDTO",
    "UsageMetadataDTO",
    "ServiceErrorDTO",
    "GenerateContentResponseDTO",
]
