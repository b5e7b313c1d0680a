"""Schema engine: shape trees, wire declaration, validation and type derivation."""

from .nodes import (
    ArraySchema,
    EnumSchema,
    ObjectSchema,
    PrimitiveKind,
    PrimitiveSchema,
    SchemaNode,
    array_of,
    boolean,
    enum_of,
    integer,
    null,
    number,
    object_of,
    string,
)
from .declare import WireSchema, declare
from .validate import ROOT, check, json_type, validate
from .from_type import schema_from_signature, schema_from_type

__all__ = [
    "ArraySchema",
    "EnumSchema",
    "ObjectSchema",
    "PrimitiveKind",
    "PrimitiveSchema",
    "SchemaNode",
    "WireSchema",
    "array_of",
    "boolean",
    "check",
    "declare",
    "enum_of",
    "integer",
    "json_type",
    "null",
    "number",
    "object_of",
    "ROOT",
    "schema_from_signature",
    "schema_from_type",
    "string",
    "validate",
]
