"""Declaration of a function the model may call."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..errors import ValidationError
from ..schema import ObjectSchema, declare, schema_from_type
from .part import function_name_violations


@dataclass(frozen=True)
class FunctionDeclaration:
    """Name, description and parameter shape of a callable tool.

    ``parameters`` is ``None`` for functions taking no arguments.
    """

    name: str
    description: str = ""
    parameters: Optional[ObjectSchema] = None

    def __post_init__(self) -> None:
        violations = function_name_violations(self.name)
        if self.parameters is not None and not isinstance(self.parameters, ObjectSchema):
            violations.append(f"parameters of {self.name!r} must be an object schema")
        if violations:
            raise ValidationError(violations=violations)

    @classmethod
    def from_type(cls, name: str, description: str, params_type: Any) -> "FunctionDeclaration":
        """Declare a function whose arguments are described by a model or dataclass."""
        schema = schema_from_type(params_type)
        if not isinstance(schema, ObjectSchema):
            raise ValidationError.single(f"parameters of {name!r} must describe an object")
        return cls(name, description, schema)

    def to_wire(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"name": self.name}
        if self.description:
            out["description"] = self.description
        if self.parameters is not None and self.parameters.properties:
            out["parameters"] = declare(self.parameters)
        return out


__all__ = ["FunctionDeclaration"]
