"""
Request-shape validation error.

Raised synchronously at build time. Carries every violation found so callers
can fix all problems in one pass. Never retried.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, List

from .error_code import Stage
from .gemini_error import GeminiError


@dataclass(eq=False)
class ValidationError(GeminiError):
    """Aggregated, caller-fixable validation failure.

    Attributes:
        violations: Ordered list of violation descriptions.
    """

    message: str = ""
    violations: List[str] = field(default_factory=list)
    stage: ClassVar[Stage] = Stage.BUILD

    def __post_init__(self) -> None:
        if not self.violations and self.message:
            self.violations = [self.message]
        if not self.message:
            self.message = "; ".join(self.violations) or "invalid request"

    @classmethod
    def single(cls, violation: str) -> "ValidationError":
        return cls(violations=[violation])


__all__ = ["ValidationError"]
