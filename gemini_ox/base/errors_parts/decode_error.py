"""
Decode-stage error for streamed and single-shot responses.

Always surfaced to the caller: a decode failure means either a truncated
connection, a protocol change, or a service-side error object in the stream.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional

from .error_code import Stage
from .gemini_error import GeminiError


class DecodeErrorKind(str, Enum):
    TRUNCATED = "truncated"
    MALFORMED = "malformed"
    SERVICE = "service"


@dataclass(eq=False)
class DecodeError(GeminiError):
    """Response payload could not be decoded.

    Attributes:
        kind: Truncated stream, malformed unit, or service error object.
        fragment: Raw offending fragment (may be shortened for very large units).
    """

    kind: DecodeErrorKind = DecodeErrorKind.MALFORMED
    fragment: Optional[str] = None
    stage: ClassVar[Stage] = Stage.DECODE

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.stage.value} {self.kind.value}: {self.message}"


__all__ = ["DecodeError", "DecodeErrorKind"]
