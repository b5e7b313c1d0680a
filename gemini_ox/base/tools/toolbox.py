"""In-process registry of callable tools for function calling.

A ``ToolBox`` maps function names to Python callables and derives each
callable's :class:`FunctionDeclaration` from its type hints:

- a handler taking exactly one pydantic-model parameter is declared with the
  model's schema, and receives a validated model instance;
- any other handler is declared from its signature (one property per
  parameter) and receives the arguments as keywords after they are checked
  against that schema.

Handlers may be sync or async. Invocation never raises for tool-level
problems (unknown tool, arguments that do not match the schema, a handler
exception, an unserializable result); those come back to the model as an
``{"error": {"code", "message"}}`` function response.
"""

from __future__ import annotations

import dataclasses
import inspect
import json
import logging
import typing
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..dto.tool_result import ToolResultDTO
from ..errors import ValidationError
from ..logging import get_logger, log_event
from ..log_support import LogContext
from ..models import AggregatedResponse, FunctionCall, FunctionDeclaration, FunctionResponse, Turn
from ..schema import ObjectSchema, check, schema_from_signature, schema_from_type

ToolHandler = Callable[..., Any]

_logger = get_logger("tools")


@dataclass(frozen=True)
class _Tool:
    declaration: FunctionDeclaration
    handler: ToolHandler
    input_model: Optional[Type[BaseModel]] = None


def _single_model_param(fn: ToolHandler) -> Optional[Type[BaseModel]]:
    params = [
        p
        for name, p in inspect.signature(fn).parameters.items()
        if name not in ("self", "cls")
        and p.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
    ]
    if len(params) != 1:
        return None
    hint = typing.get_type_hints(fn).get(params[0].name)
    if isinstance(hint, type) and issubclass(hint, BaseModel):
        return hint
    return None


def _description(fn: ToolHandler) -> str:
    doc = inspect.getdoc(fn) or ""
    return doc.split("\n\n", 1)[0].replace("\n", " ").strip()


def _to_json(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    json.dumps(value)
    return value


class ToolBox:
    """Registry of tools the model may call.

    Contract:
        - Register handlers with ``register(fn)`` or the ``@toolbox.tool()``
          decorator; names default to the function name.
        - ``declarations()`` lists what to send with the request.
        - ``await invoke(call)`` always returns a ``FunctionResponse``.
    """

    def __init__(self) -> None:
        self._tools: Dict[str, _Tool] = {}

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    @property
    def names(self) -> List[str]:
        return list(self._tools)

    def register(
        self,
        handler: ToolHandler,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> ToolHandler:
        """Register ``handler`` and return it unchanged.

        Raises:
            ValidationError: the name is invalid or already registered, or the
                handler's parameters cannot be described by a schema.
        """
        tool_name = name or handler.__name__
        if tool_name in self._tools:
            raise ValidationError.single(f"tool {tool_name!r} is already registered")
        model = _single_model_param(handler)
        if model is not None:
            node = schema_from_type(model)
            if not isinstance(node, ObjectSchema):
                raise ValidationError.single(f"parameters of {tool_name!r} must describe an object")
            parameters: ObjectSchema = node
        else:
            parameters = schema_from_signature(handler)
        declaration = FunctionDeclaration(
            tool_name,
            description if description is not None else _description(handler),
            parameters if parameters.properties else None,
        )
        self._tools[tool_name] = _Tool(declaration, handler, model)
        return handler

    def tool(
        self, name: Optional[str] = None, *, description: Optional[str] = None
    ) -> Callable[[ToolHandler], ToolHandler]:
        """Decorator form of :meth:`register`."""

        def decorate(fn: ToolHandler) -> ToolHandler:
            return self.register(fn, name=name, description=description)

        return decorate

    def declarations(self) -> List[FunctionDeclaration]:
        return [t.declaration for t in self._tools.values()]

    def declaration(self, name: str) -> Optional[FunctionDeclaration]:
        tool = self._tools.get(name)
        return tool.declaration if tool is not None else None

    async def run(self, call: FunctionCall) -> ToolResultDTO:
        """Invoke the tool named by ``call`` and wrap the outcome."""
        tool = self._tools.get(call.name)
        if tool is None:
            return ToolResultDTO(name=call.name, ok=False, code="NOT_FOUND", error=f"tool '{call.name}' not registered")
        args = call.args if call.args is not None else {}
        if not isinstance(args, dict):
            return ToolResultDTO(name=call.name, ok=False, code="INVALID_INPUT", error="arguments must be an object")

        if tool.input_model is not None:
            try:
                model_input = tool.input_model.model_validate(args)
            except PydanticValidationError as exc:
                return ToolResultDTO(name=call.name, ok=False, code="INVALID_INPUT", error=str(exc))
            positional, keywords = [model_input], {}
        else:
            issues = check(args, tool.declaration.parameters or ObjectSchema(()))
            if issues:
                message = "; ".join(f"{i.path}: expected {i.expected}, found {i.found}" for i in issues)
                return ToolResultDTO(name=call.name, ok=False, code="INVALID_INPUT", error=message)
            positional, keywords = [], args

        try:
            invocation = tool.handler(*positional, **keywords)
            result = await invocation if inspect.isawaitable(invocation) else invocation
        except Exception as exc:
            log_event(
                _logger,
                "tool.error",
                LogContext(operation="tool", extra={"tool": call.name}),
                level=logging.WARNING,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return ToolResultDTO(name=call.name, ok=False, code="EXCEPTION", error=str(exc))

        try:
            content = _to_json(result)
        except (TypeError, ValueError) as exc:
            return ToolResultDTO(name=call.name, ok=False, code="INVALID_OUTPUT", error=str(exc))
        return ToolResultDTO(name=call.name, ok=True, content=content)

    async def invoke(self, call: FunctionCall) -> FunctionResponse:
        result = await self.run(call)
        return FunctionResponse(call.name, result.to_response_payload())

    async def invoke_functions(self, response: AggregatedResponse) -> Optional[Turn]:
        """Answer every function call in ``response``; ``None`` when there are none.

        Calls run one after another in the order the model issued them.
        """
        calls = response.function_calls
        if not calls:
            return None
        responses = [await self.invoke(call) for call in calls]
        return Turn.function(*responses)


__all__ = ["ToolBox", "ToolHandler"]
