"""Result envelope for a local tool invocation.

The envelope is what :class:`~gemini_ox.base.tools.ToolBox` produces before
it is turned into a ``FunctionResponse`` payload for the model. Failures are
reported to the model as data (``{"error": {"code", "message"}}``) rather
than raised, so a conversation can continue after a bad call.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ToolResultDTO(BaseModel):
    """Outcome of one tool call.

    Attributes:
        name: The tool name that was invoked.
        ok: True when the tool executed successfully.
        content: JSON-compatible result when ``ok``.
        code: Error code (``NOT_FOUND``, ``INVALID_INPUT``, ``EXCEPTION``,
            ``INVALID_OUTPUT``) when not ``ok``.
        error: Human-readable error string when not ``ok``.
    """

    name: str
    ok: bool
    content: Optional[Any] = None
    code: Optional[str] = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def to_response_payload(self) -> Dict[str, Any]:
        if not self.ok:
            return {"error": {"code": self.code or "EXCEPTION", "message": self.error or ""}}
        if isinstance(self.content, dict):
            return self.content
        return {"result": self.content}


__all__ = ["ToolResultDTO"]
