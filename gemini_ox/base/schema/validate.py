"""Structural validation of decoded JSON values against a ``SchemaNode``.

The walk is depth-first and never stops at the first problem: every issue
is collected with its path (``root.items[2].name``) and reported through one
:class:`SchemaMismatch`.
"""
from __future__ import annotations

from typing import Any, List

from ..errors import SchemaIssue, SchemaMismatch
from .nodes import ArraySchema, EnumSchema, ObjectSchema, PrimitiveKind, PrimitiveSchema, SchemaNode

ROOT = "root"


def json_type(value: Any) -> str:
    """Name of the JSON type of a decoded value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _matches_primitive(value: Any, kind: PrimitiveKind) -> bool:
    if kind is PrimitiveKind.STRING:
        return isinstance(value, str)
    if kind is PrimitiveKind.BOOLEAN:
        return isinstance(value, bool)
    if kind is PrimitiveKind.NULL:
        return value is None
    if isinstance(value, bool):
        return False
    if kind is PrimitiveKind.INTEGER:
        return isinstance(value, int) or (isinstance(value, float) and value.is_integer())
    return isinstance(value, (int, float))


def _in_enum(value: Any, allowed: tuple) -> bool:
    # True == 1 in Python; booleans only match booleans
    for candidate in allowed:
        if isinstance(candidate, bool) or isinstance(value, bool):
            if type(candidate) is type(value) and candidate == value:
                return True
        elif candidate == value:
            return True
    return False


def _walk(value: Any, node: SchemaNode, path: str, issues: List[SchemaIssue]) -> None:
    if value is None and node.nullable:
        return
    if isinstance(node, PrimitiveSchema):
        if not _matches_primitive(value, node.kind):
            issues.append(SchemaIssue(path, node.kind.value, json_type(value)))
        return
    if isinstance(node, EnumSchema):
        if not _in_enum(value, node.values):
            issues.append(SchemaIssue(path, f"one of {list(node.values)!r}", repr(value)))
        return
    if isinstance(node, ArraySchema):
        if not isinstance(value, (list, tuple)):
            issues.append(SchemaIssue(path, "array", json_type(value)))
            return
        if node.min_items is not None and len(value) < node.min_items:
            issues.append(SchemaIssue(path, f"at least {node.min_items} items", f"{len(value)} items"))
        if node.max_items is not None and len(value) > node.max_items:
            issues.append(SchemaIssue(path, f"at most {node.max_items} items", f"{len(value)} items"))
        for i, item in enumerate(value):
            _walk(item, node.items, f"{path}[{i}]", issues)
        return
    if isinstance(node, ObjectSchema):
        if not isinstance(value, dict):
            issues.append(SchemaIssue(path, "object", json_type(value)))
            return
        for name, child in node.properties:
            child_path = f"{path}.{name}"
            if name in value:
                _walk(value[name], child, child_path, issues)
            elif name in node.required:
                issues.append(SchemaIssue(child_path, "required property", "missing"))
        if node.closed:
            for key in value:
                if node.get(key) is None:
                    issues.append(SchemaIssue(f"{path}.{key}", "no additional properties", "unexpected key"))
        return
    raise TypeError(f"not a schema node: {type(node).__name__}")


def check(value: Any, node: SchemaNode, path: str = ROOT) -> List[SchemaIssue]:
    """Return every mismatch between ``value`` and ``node`` (empty when valid)."""
    issues: List[SchemaIssue] = []
    _walk(value, node, path, issues)
    return issues


def validate(value: Any, node: SchemaNode, path: str = ROOT) -> Any:
    """Validate ``value`` against ``node``; return it unchanged or raise.

    Raises:
        SchemaMismatch: aggregating every issue found.
    """
    issues = check(value, node, path)
    if issues:
        raise SchemaMismatch(issues=issues)
    return value


__all__ = ["ROOT", "check", "json_type", "validate"]
