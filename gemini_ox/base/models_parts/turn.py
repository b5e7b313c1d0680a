"""
One message in a conversation: a role plus an ordered, non-empty list of parts.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from ..errors import ValidationError
from .part import PART_TYPES, Part, Text, part_from_wire
from .role import ALLOWED_PARTS, Role


@dataclass(frozen=True)
class Turn:
    """Immutable conversation turn.

    Construction enforces that the turn has at least one part and that every
    part kind is allowed for the role; all violations are reported together.
    """

    role: Role
    parts: Tuple[Part, ...]

    def __post_init__(self) -> None:
        try:
            role = Role.parse(self.role)
        except ValueError as exc:
            raise ValidationError.single(f"unknown role {self.role!r}") from exc
        parts = tuple(self.parts)
        object.__setattr__(self, "role", role)
        object.__setattr__(self, "parts", parts)
        violations = Turn.violations(role, parts)
        if violations:
            raise ValidationError(violations=violations)

    @staticmethod
    def violations(role: Role, parts: Sequence[Any], label: str = "turn") -> List[str]:
        """Report role/part problems without raising."""
        if not parts:
            return [f"{label} ({Role.parse(role).value}) has no parts"]
        role = Role.parse(role)
        allowed = ALLOWED_PARTS[role]
        out: List[str] = []
        for i, part in enumerate(parts):
            if not isinstance(part, PART_TYPES):
                out.append(f"{label} part {i} is not a content part: {type(part).__name__}")
            elif not isinstance(part, allowed):
                out.append(f"{label} part {i}: {type(part).__name__} is not allowed for role '{role.value}'")
        return out

    @classmethod
    def of(cls, role: "Role | str", *parts: "Part | str") -> "Turn":
        """Build a turn; bare strings become :class:`Text` parts."""
        return cls(Role.parse(role), tuple(Text(p) if isinstance(p, str) else p for p in parts))

    @classmethod
    def user(cls, *parts: "Part | str") -> "Turn":
        return cls.of(Role.USER, *parts)

    @classmethod
    def model(cls, *parts: "Part | str") -> "Turn":
        return cls.of(Role.MODEL, *parts)

    @classmethod
    def function(cls, *parts: Part) -> "Turn":
        return cls.of(Role.FUNCTION, *parts)

    @property
    def text(self) -> str:
        """Concatenation of all text parts."""
        return "".join(p.text for p in self.parts if isinstance(p, Text))

    def parts_of(self, kind: type) -> List[Any]:
        return [p for p in self.parts if isinstance(p, kind)]

    def to_wire(self) -> Dict[str, Any]:
        return {"role": self.role.value, "parts": [p.to_wire() for p in self.parts]}

    @classmethod
    def from_wire(cls, data: Dict[str, Any], default_role: Role = Role.MODEL) -> "Turn":
        role = data.get("role") or default_role
        return cls(Role.parse(role), tuple(part_from_wire(p) for p in data.get("parts") or ()))


__all__ = ["Turn"]
