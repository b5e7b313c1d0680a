"""Function-calling mode and allow-list."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple


class FunctionCallingMode(str, Enum):
    AUTO = "AUTO"
    ANY = "ANY"
    NONE = "NONE"


@dataclass(frozen=True)
class ToolConfig:
    """``mode`` plus the optional names the model may call (only meaningful for ``ANY``)."""

    mode: FunctionCallingMode = FunctionCallingMode.AUTO
    allowed_function_names: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "mode", FunctionCallingMode(self.mode))
        object.__setattr__(self, "allowed_function_names", tuple(self.allowed_function_names))

    def to_wire(self) -> Dict[str, Any]:
        config: Dict[str, Any] = {"mode": self.mode.value}
        if self.allowed_function_names:
            config["allowedFunctionNames"] = list(self.allowed_function_names)
        return {"functionCallingConfig": config}


__all__ = ["FunctionCallingMode", "ToolConfig"]
