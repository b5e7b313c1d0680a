"""Derive ``SchemaNode`` trees from Python types and callables.

Supported shapes:
    - ``str``, ``int``, ``float``, ``bool``, ``None``
    - ``Optional[T]`` (``T | None``) -> ``T`` with ``nullable=True``
    - ``list[T]``, ``Sequence[T]``, ``tuple[T, ...]``, ``set[T]``
    - ``Literal[...]`` and ``Enum`` subclasses -> :class:`EnumSchema`
    - pydantic models (field aliases and descriptions carried, ``extra="forbid"``
      yields a closed object) and dataclasses
    - ``Annotated[T, "description"]`` attaches a description

Anything else (bare containers, mappings, non-optional unions, recursive
models) raises :class:`ValidationError`.
"""
from __future__ import annotations

import collections.abc
import dataclasses
import enum
import inspect
import types
import typing
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from pydantic import BaseModel

from ..errors import ValidationError
from .nodes import (
    ArraySchema,
    EnumSchema,
    ObjectSchema,
    PrimitiveKind,
    PrimitiveSchema,
    SchemaNode,
)

_PRIMITIVES = {
    str: PrimitiveKind.STRING,
    bool: PrimitiveKind.BOOLEAN,
    int: PrimitiveKind.INTEGER,
    float: PrimitiveKind.NUMBER,
    type(None): PrimitiveKind.NULL,
}
_SEQUENCE_ORIGINS = (list, tuple, set, frozenset, collections.abc.Sequence, collections.abc.Iterable)
_UNION_TYPES: Tuple[Any, ...] = (typing.Union, types.UnionType)


def _with(node: SchemaNode, *, description: Optional[str] = None, nullable: bool = False) -> SchemaNode:
    changes: Dict[str, Any] = {}
    if description and not node.description:
        changes["description"] = description
    if nullable and not node.nullable:
        changes["nullable"] = True
    return dataclasses.replace(node, **changes) if changes else node


def _unsupported(tp: Any, why: str = "unsupported type") -> ValidationError:
    return ValidationError.single(f"{why}: {tp!r}")


def _from_model(tp: type, seen: Set[type]) -> ObjectSchema:
    props: List[Tuple[str, SchemaNode]] = []
    required: List[str] = []
    for name, info in tp.model_fields.items():
        key = info.alias or name
        node = _convert(info.annotation, seen)
        props.append((key, _with(node, description=info.description)))
        if info.is_required():
            required.append(key)
    closed = tp.model_config.get("extra") == "forbid"
    return ObjectSchema(tuple(props), tuple(required), closed, _doc(tp))


def _from_dataclass(tp: type, seen: Set[type]) -> ObjectSchema:
    hints = typing.get_type_hints(tp, include_extras=True)
    props: List[Tuple[str, SchemaNode]] = []
    required: List[str] = []
    for f in dataclasses.fields(tp):
        if not f.init:
            continue
        node = _convert(hints.get(f.name, Any), seen)
        props.append((f.name, _with(node, description=f.metadata.get("description"))))
        if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
            required.append(f.name)
    return ObjectSchema(tuple(props), tuple(required), False, _doc(tp))


def _doc(tp: Any) -> Optional[str]:
    doc = tp.__dict__.get("__doc__")
    if not doc:
        return None
    doc = inspect.cleandoc(doc)
    if dataclasses.is_dataclass(tp) and doc.startswith(f"{tp.__name__}("):
        return None  # autogenerated signature docstring
    return doc.strip().split("\n\n", 1)[0].replace("\n", " ")


def _convert(tp: Any, seen: Set[type]) -> SchemaNode:
    if tp in _PRIMITIVES:
        return PrimitiveSchema(_PRIMITIVES[tp])
    if tp is Any or tp is object:
        raise _unsupported(tp, "cannot derive a schema for an untyped value")

    origin = typing.get_origin(tp)
    args = typing.get_args(tp)

    if origin is typing.Annotated:
        base, *meta = args
        desc = next((m for m in meta if isinstance(m, str)), None)
        return _with(_convert(base, seen), description=desc)

    if origin in _UNION_TYPES:
        members = [a for a in args if a is not type(None)]
        if len(members) == 1 and len(members) < len(args):
            return _with(_convert(members[0], seen), nullable=True)
        literal_members = [a for a in members if typing.get_origin(a) is typing.Literal]
        if literal_members and len(literal_members) == len(members):
            values = tuple(v for lit in literal_members for v in typing.get_args(lit))
            return EnumSchema(values, nullable=len(members) < len(args))
        raise _unsupported(tp, "only Optional unions are supported")

    if origin is typing.Literal:
        return EnumSchema(tuple(args))

    if origin in _SEQUENCE_ORIGINS:
        if origin is tuple and not (len(args) == 2 and args[1] is Ellipsis):
            raise _unsupported(tp, "only homogeneous tuple[T, ...] is supported")
        if not args:
            raise _unsupported(tp, "sequence needs an item type")
        return ArraySchema(_convert(args[0], seen))

    if origin is not None:
        raise _unsupported(tp)

    if isinstance(tp, type):
        if tp in (list, tuple, set, frozenset, dict):
            raise _unsupported(tp, "container needs type parameters")
        if issubclass(tp, enum.Enum):
            return EnumSchema(tuple(member.value for member in tp), _doc(tp))
        if issubclass(tp, BaseModel) or dataclasses.is_dataclass(tp):
            if tp in seen:
                raise _unsupported(tp, "recursive types are not supported")
            seen.add(tp)
            try:
                if issubclass(tp, BaseModel):
                    return _from_model(tp, seen)
                return _from_dataclass(tp, seen)
            finally:
                seen.discard(tp)
    raise _unsupported(tp)


def schema_from_type(tp: Any) -> SchemaNode:
    """Return the schema describing values of type ``tp``."""
    return _convert(tp, set())


def schema_from_signature(fn: Callable[..., Any]) -> ObjectSchema:
    """Describe the keyword arguments of ``fn`` as an object schema.

    Parameters without defaults are required. ``*args``/``**kwargs`` and
    ``self``/``cls`` are skipped; an unannotated parameter is an error.
    """
    sig = inspect.signature(fn)
    hints = typing.get_type_hints(fn, include_extras=True)
    props: List[Tuple[str, SchemaNode]] = []
    required: List[str] = []
    for name, param in sig.parameters.items():
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        if name in ("self", "cls"):
            continue
        if name not in hints:
            raise ValidationError.single(f"parameter {name!r} of {fn.__name__} has no type annotation")
        props.append((name, _convert(hints[name], set())))
        if param.default is inspect.Parameter.empty:
            required.append(name)
    return ObjectSchema(tuple(props), tuple(required))


__all__ = ["schema_from_type", "schema_from_signature"]
