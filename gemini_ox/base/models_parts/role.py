"""Conversation roles and the part kinds each role may author."""
from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Tuple

from .part import (
    CodeExecutionResult,
    ExecutableCode,
    FileReference,
    FunctionCall,
    FunctionResponse,
    InlineData,
    Text,
)


class Role(str, Enum):
    USER = "user"
    MODEL = "model"
    FUNCTION = "function"

    @classmethod
    def parse(cls, value: "Role | str") -> "Role":
        if isinstance(value, Role):
            return value
        return cls(str(value).lower())


ALLOWED_PARTS: Dict[Role, Tuple[type, ...]] = {
    Role.USER: (Text, InlineData, FileReference, FunctionResponse),
    Role.MODEL: (Text, InlineData, FileReference, FunctionCall, ExecutableCode, CodeExecutionResult),
    Role.FUNCTION: (FunctionResponse,),
}

ROLE_NAMES: FrozenSet[str] = frozenset(r.value for r in Role)

__all__ = ["Role", "ALLOWED_PARTS", "ROLE_NAMES"]
