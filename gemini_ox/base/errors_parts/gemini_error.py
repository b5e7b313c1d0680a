"""
Base exception type for the gemini_ox pipeline.

Every error raised by the library derives from `GeminiError`, which names the
pipeline stage (build, dispatch, decode, schema) where it originated so that
callers can diagnose failures without inspecting raw payloads.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from .error_code import Stage


@dataclass(eq=False)
class GeminiError(Exception):
    """Root of the gemini_ox error hierarchy.

    Attributes:
        message: Human-readable error message suitable for logging.
        stage: Class-level :class:`Stage` identifying the failing pipeline stage.
    """

    message: str
    stage: ClassVar[Stage] = Stage.BUILD

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.stage.value}: {self.message}"


__all__ = ["GeminiError"]
