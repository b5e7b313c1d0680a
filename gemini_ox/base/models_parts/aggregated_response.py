"""
Final result of a generate call.

Produced both by :func:`~gemini_ox.base.streaming.parse_response` for
single-shot payloads and by the response aggregator for streams; the two
paths yield equal values for equivalent input.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from ..errors import SchemaIssue, SchemaMismatch
from ..schema import ROOT
from .finish_reason import FinishReason
from .part import FunctionCall
from .prompt_feedback import PromptFeedback
from .safety import SafetyRating
from .turn import Turn
from .usage import UsageMetadata


@dataclass(frozen=True)
class AggregatedResponse:
    """Assembled model output plus response metadata.

    ``thoughts`` holds thought-summary text, kept apart from the answer.
    ``safety_ratings`` are the candidate's ratings; ratings of the prompt live
    on ``prompt_feedback``.
    """

    turns: Tuple[Turn, ...] = ()
    usage: Optional[UsageMetadata] = None
    finish_reason: Optional[FinishReason] = None
    prompt_feedback: Optional[PromptFeedback] = None
    safety_ratings: Tuple[SafetyRating, ...] = ()
    thoughts: str = ""

    @property
    def turn(self) -> Optional[Turn]:
        """The (single) model turn, if any content was produced."""
        return self.turns[0] if self.turns else None

    @property
    def text(self) -> str:
        return "".join(t.text for t in self.turns)

    @property
    def function_calls(self) -> List[FunctionCall]:
        return [p for t in self.turns for p in t.parts if isinstance(p, FunctionCall)]

    @property
    def blocked(self) -> bool:
        return self.prompt_feedback is not None and self.prompt_feedback.blocked

    def missing_content_reason(self) -> Optional[str]:
        """Why no content was produced, or ``None`` when there is content."""
        if self.turns:
            return None
        if self.blocked:
            return f"no content, prompt blocked ({self.prompt_feedback.block_reason.value})"
        if self.finish_reason is not None and self.finish_reason is not FinishReason.STOP:
            return f"no content, generation finished with {self.finish_reason.value}"
        return None

    def json(self) -> Any:
        """Parse the response text as JSON.

        Raises:
            SchemaMismatch: the text is not valid JSON, or nothing was generated.
        """
        reason = self.missing_content_reason()
        if reason is not None:
            raise SchemaMismatch(issues=[SchemaIssue(ROOT, "JSON document", reason)])
        try:
            return json.loads(self.text)
        except ValueError as exc:
            raise SchemaMismatch(issues=[SchemaIssue(ROOT, "JSON document", f"unparseable text ({exc})")]) from exc


__all__ = ["AggregatedResponse"]
