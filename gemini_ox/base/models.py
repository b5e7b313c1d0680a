"""
Content and request model public surface.

Re-exports the one-class-per-file implementations under
``gemini_ox.base.models_parts`` so callers have one stable import path.
"""

from .models_parts.part import (
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
from .models_parts.role import Role
from .models_parts.turn import Turn
from .models_parts.generation_config import GenerationConfig
from .models_parts.safety import DEFAULT_SAFETY_SETTINGS, HarmBlockThreshold, HarmCategory, SafetyRating, SafetySetting
from .models_parts.tool_config import FunctionCallingMode, ToolConfig
from .models_parts.function_declaration import FunctionDeclaration
from .models_parts.usage import UsageMetadata
from .models_parts.finish_reason import FinishReason
from .models_parts.prompt_feedback import BlockReason, PromptFeedback
from .models_parts.aggregated_response import AggregatedResponse
from .models_parts.request import GenerateContentRequest
from .models_parts.request_builder import GenerateContentRequestBuilder

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
