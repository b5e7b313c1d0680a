"""
Schema-stage error aggregating every structural mismatch found.

Each :class:`SchemaIssue` carries the dotted/bracketed path of the offending
value (for example ``root.items[2].name``), what the schema expected, and what
was found. The exception exposes the first issue's fields directly for the
common single-mismatch case.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, List

from .error_code import Stage
from .gemini_error import GeminiError


@dataclass(frozen=True)
class SchemaIssue:
    path: str
    expected: str
    found: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.path}: expected {self.expected}, found {self.found}"


@dataclass(eq=False)
class SchemaMismatch(GeminiError):
    """Decoded structured payload does not satisfy the declared schema."""

    message: str = ""
    issues: List[SchemaIssue] = field(default_factory=list)
    stage: ClassVar[Stage] = Stage.SCHEMA

    def __post_init__(self) -> None:
        if not self.message:
            self.message = "; ".join(str(i) for i in self.issues) or "schema mismatch"

    @property
    def path(self) -> str:
        return self.issues[0].path if self.issues else "root"

    @property
    def expected(self) -> str:
        return self.issues[0].expected if self.issues else ""

    @property
    def found(self) -> str:
        return self.issues[0].found if self.issues else ""


__all__ = ["SchemaIssue", "SchemaMismatch"]
