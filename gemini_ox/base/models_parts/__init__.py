"""Models parts package public surface.

Re-exports the content model so callers can import from
`gemini_ox.base.models_parts`, while `gemini_ox.base.models` remains the
primary stable import path.
"""

from .part import (
    CodeExecutionResult,
    ExecutableCode,
    FileReference,
    FunctionCall,
    FunctionResponse,
    InlineData,
    Part,
    Text,
    part_from_wire,
)
from .role import Role
from .turn import Turn
from .generation_config import GenerationConfig
from .safety import DEFAULT_SAFETY_SETTINGS, HarmBlockThreshold, HarmCategory, SafetyRating, SafetySetting
from .tool_config import FunctionCallingMode, ToolConfig
from .function_declaration import FunctionDeclaration
from .usage import UsageMetadata
from .finish_reason import FinishReason
from .prompt_feedback import BlockReason, PromptFeedback
from .aggregated_response import AggregatedResponse
from .request import GenerateContentRequest
from .request_builder import GenerateContentRequestBuilder

__all__ = [
    "Text",
    "InlineData",
    "FileReference",
    "FunctionCall",
    "FunctionResponse",
    "ExecutableCode",
    "CodeExecutionResult",
    "Part",
    "part_from_wire",
    "Role",
    "Turn",
    "GenerationConfig",
    "HarmCategory",
    "HarmBlockThreshold",
    "SafetySetting",
    "SafetyRating",
    "DEFAULT_SAFETY_SETTINGS",
    "FunctionCallingMode",
    "ToolConfig",
    "FunctionDeclaration",
    "UsageMetadata",
    "FinishReason",
    "BlockReason",
    "PromptFeedback",
    "AggregatedResponse",
    "GenerateContentRequest",
    "GenerateContentRequestBuilder",
]
