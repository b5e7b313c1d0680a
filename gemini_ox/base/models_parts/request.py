"""
Validated, immutable generate request.

Instances come from :class:`GenerateContentRequestBuilder`, whose ``build()``
is the only place cross-field rules are checked.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

from ..schema import ObjectSchema, SchemaNode
from .function_declaration import FunctionDeclaration
from .generation_config import GenerationConfig
from .safety import DEFAULT_SAFETY_SETTINGS, SafetySetting
from .tool_config import ToolConfig
from .turn import Turn

if TYPE_CHECKING:
    from .request_builder import GenerateContentRequestBuilder


@dataclass(frozen=True)
class GenerateContentRequest:
    """A complete generate request.

    Attributes:
        model: Model name (``gemini-2.0-flash`` or ``models/gemini-2.0-flash``).
        turns: Conversation so far, oldest first.
        system_instruction: Optional text-only system instruction.
        generation_config: Sampling and output configuration.
        functions: Declared functions the model may call.
        tool_config: Function calling mode and allow-list.
        safety_settings: Per-category block thresholds.
        code_execution: Enable the service's code execution tool.
    """

    model: str
    turns: Tuple[Turn, ...]
    system_instruction: Optional[str] = None
    generation_config: GenerationConfig = field(default_factory=GenerationConfig)
    functions: Tuple[FunctionDeclaration, ...] = ()
    tool_config: Optional[ToolConfig] = None
    safety_settings: Tuple[SafetySetting, ...] = DEFAULT_SAFETY_SETTINGS
    code_execution: bool = False

    @staticmethod
    def builder() -> "GenerateContentRequestBuilder":
        from .request_builder import GenerateContentRequestBuilder

        return GenerateContentRequestBuilder()

    @property
    def model_path(self) -> str:
        """Model name without the ``models/`` prefix."""
        return self.model[len("models/"):] if self.model.startswith("models/") else self.model

    @property
    def response_schema(self) -> Optional[SchemaNode]:
        return self.generation_config.response_schema

    def function(self, name: str) -> Optional[FunctionDeclaration]:
        return next((f for f in self.functions if f.name == name), None)

    def function_schemas(self) -> Dict[str, ObjectSchema]:
        return {f.name: f.parameters for f in self.functions if f.parameters is not None}

    def to_wire(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"contents": [t.to_wire() for t in self.turns]}
        tools = []
        if self.functions:
            tools.append({"functionDeclarations": [f.to_wire() for f in self.functions]})
        if self.code_execution:
            tools.append({"codeExecution": {}})
        if tools:
            body["tools"] = tools
        if self.tool_config is not None:
            body["toolConfig"] = self.tool_config.to_wire()
        if self.safety_settings:
            body["safetySettings"] = [s.to_wire() for s in self.safety_settings]
        if self.system_instruction is not None:
            body["systemInstruction"] = {"parts": [{"text": self.system_instruction}]}
        config = self.generation_config.to_wire()
        if config:
            body["generationConfig"] = config
        return body


__all__ = ["GenerateContentRequest"]
