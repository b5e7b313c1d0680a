"""
Shape description tree used for structured output and function parameters.

A ``SchemaNode`` is one of four immutable variants:

- :class:`PrimitiveSchema` (string / number / integer / boolean / null)
- :class:`ArraySchema` (homogeneous items)
- :class:`ObjectSchema` (properties in declaration order, required names,
  optional ``closed`` flag rejecting unknown keys during validation)
- :class:`EnumSchema` (fixed set of literal values)

Every variant carries an optional ``description`` and a ``nullable`` flag.
The lowercase helpers (``string()``, ``object_of(...)`` ...) are the
intended construction surface.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple, Union

from ..errors import ValidationError


class PrimitiveKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    NULL = "null"


@dataclass(frozen=True)
class PrimitiveSchema:
    kind: PrimitiveKind
    description: Optional[str] = None
    nullable: bool = False
    format: Optional[str] = None


@dataclass(frozen=True)
class ArraySchema:
    items: "SchemaNode"
    description: Optional[str] = None
    nullable: bool = False
    min_items: Optional[int] = None
    max_items: Optional[int] = None


@dataclass(frozen=True)
class ObjectSchema:
    """Object shape with ordered properties.

    ``properties`` may be given as a mapping or a sequence of ``(name, node)``
    pairs; it is stored as a tuple of pairs so declaration order is part of
    the value. Every name in ``required`` must be a declared property.
    """

    properties: Tuple[Tuple[str, "SchemaNode"], ...] = ()
    required: Tuple[str, ...] = ()
    closed: bool = False
    description: Optional[str] = None
    nullable: bool = False
    _index: Dict[str, "SchemaNode"] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        props = self.properties
        pairs = tuple(props.items()) if isinstance(props, Mapping) else tuple((str(k), v) for k, v in props)
        object.__setattr__(self, "properties", pairs)
        object.__setattr__(self, "required", tuple(self.required))
        index = dict(pairs)
        if len(index) != len(pairs):
            raise ValidationError.single("object schema declares a property more than once")
        unknown = [name for name in self.required if name not in index]
        if unknown:
            raise ValidationError.single(f"required properties not declared: {', '.join(unknown)}")
        object.__setattr__(self, "_index", index)

    def get(self, name: str) -> Optional["SchemaNode"]:
        return self._index.get(name)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.properties)


def _literal_kind(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return None


@dataclass(frozen=True)
class EnumSchema:
    values: Tuple[Any, ...]
    description: Optional[str] = None
    nullable: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))
        if not self.values:
            raise ValidationError.single("enum schema requires at least one value")
        kinds = {_literal_kind(v) for v in self.values}
        if None in kinds:
            raise ValidationError.single("enum values must be strings, numbers or booleans")
        if len(kinds) > 1:
            raise ValidationError.single(f"enum values must share one type, got {', '.join(sorted(kinds))}")


SchemaNode = Union[PrimitiveSchema, ArraySchema, ObjectSchema, EnumSchema]


def string(description: Optional[str] = None, *, nullable: bool = False, format: Optional[str] = None) -> PrimitiveSchema:
    return PrimitiveSchema(PrimitiveKind.STRING, description, nullable, format)


def number(description: Optional[str] = None, *, nullable: bool = False) -> PrimitiveSchema:
    return PrimitiveSchema(PrimitiveKind.NUMBER, description, nullable)


def integer(description: Optional[str] = None, *, nullable: bool = False) -> PrimitiveSchema:
    return PrimitiveSchema(PrimitiveKind.INTEGER, description, nullable)


def boolean(description: Optional[str] = None, *, nullable: bool = False) -> PrimitiveSchema:
    return PrimitiveSchema(PrimitiveKind.BOOLEAN, description, nullable)


def null(description: Optional[str] = None) -> PrimitiveSchema:
    return PrimitiveSchema(PrimitiveKind.NULL, description)


def array_of(
    items: SchemaNode,
    description: Optional[str] = None,
    *,
    nullable: bool = False,
    min_items: Optional[int] = None,
    max_items: Optional[int] = None,
) -> ArraySchema:
    return ArraySchema(items, description, nullable, min_items, max_items)


def object_of(
    properties: Union[Mapping[str, SchemaNode], Sequence[Tuple[str, SchemaNode]]],
    required: Optional[Iterable[str]] = None,
    description: Optional[str] = None,
    *,
    closed: bool = False,
    nullable: bool = False,
) -> ObjectSchema:
    """Build an :class:`ObjectSchema`; ``required=None`` marks every property required."""
    pairs = tuple(properties.items()) if isinstance(properties, Mapping) else tuple(properties)
    names = tuple(name for name, _ in pairs)
    req = names if required is None else tuple(required)
    return ObjectSchema(pairs, req, closed, description, nullable)


def enum_of(*values: Any, description: Optional[str] = None, nullable: bool = False) -> EnumSchema:
    return EnumSchema(tuple(values), description, nullable)


__all__ = [
    "PrimitiveKind",
    "PrimitiveSchema",
    "ArraySchema",
    "ObjectSchema",
    "EnumSchema",
    "SchemaNode",
    "string",
    "number",
    "integer",
    "boolean",
    "null",
    "array_of",
    "object_of",
    "enum_of",
]
