"""Translate a ``SchemaNode`` tree into the service's wire schema.

Pure and deterministic: the same tree always yields an equal dict with the
same key order. Object properties keep declaration order and are repeated
in ``propertyOrdering`` because the service does not preserve JSON key order
on its own.
"""
from __future__ import annotations

from typing import Any, Dict, List

from .nodes import ArraySchema, EnumSchema, ObjectSchema, PrimitiveSchema, SchemaNode

WireSchema = Dict[str, Any]


def _enum_type(values: tuple) -> str:
    if all(isinstance(v, bool) for v in values):
        return "BOOLEAN"
    if all(isinstance(v, int) and not isinstance(v, bool) for v in values):
        return "INTEGER"
    if all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values):
        return "NUMBER"
    return "STRING"


def _common(out: WireSchema, node: SchemaNode) -> WireSchema:
    if node.description:
        out["description"] = node.description
    if node.nullable:
        out["nullable"] = True
    return out


def declare(node: SchemaNode) -> WireSchema:
    """Return the wire representation of ``node``."""
    if isinstance(node, PrimitiveSchema):
        out: WireSchema = {"type": node.kind.value.upper()}
        if node.format:
            out["format"] = node.format
        return _common(out, node)
    if isinstance(node, EnumSchema):
        kind = _enum_type(node.values)
        out = {"type": kind}
        if kind == "STRING":
            out["format"] = "enum"
        out["enum"] = list(node.values)
        return _common(out, node)
    if isinstance(node, ArraySchema):
        out = {"type": "ARRAY", "items": declare(node.items)}
        if node.min_items is not None:
            out["minItems"] = node.min_items
        if node.max_items is not None:
            out["maxItems"] = node.max_items
        return _common(out, node)
    if isinstance(node, ObjectSchema):
        out = {"type": "OBJECT"}
        if node.properties:
            out["properties"] = {name: declare(child) for name, child in node.properties}
            out["propertyOrdering"] = list(node.names)
        required: List[str] = [name for name in node.names if name in node.required]
        if required:
            out["required"] = required
        return _common(out, node)
    raise TypeError(f"not a schema node: {type(node).__name__}")


__all__ = ["WireSchema", "declare"]
