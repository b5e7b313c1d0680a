"""
Fluent builder for :class:`GenerateContentRequest`.

Setters check their own argument and record problems instead of raising, so
a caller sees every mistake at once. ``build()`` adds the cross-field rules
and raises a single :class:`ValidationError` enumerating all violations:

- a model is set and there is at least one turn;
- every turn has parts whose kinds are allowed for its role;
- at most one of ``response_schema`` / ``response_json_schema``;
- an output schema implies ``application/json`` (filled in when unset);
- ``allowed_function_names`` are declared, ``ANY`` mode has declarations,
  no function is declared twice;
- the system instruction is text only.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..errors import ValidationError
from ..schema import ArraySchema, EnumSchema, ObjectSchema, PrimitiveSchema, SchemaNode, schema_from_type
from .function_declaration import FunctionDeclaration
from .generation_config import (
    JSON_MIME_TYPE,
    GenerationConfig,
    check_candidate_count,
    check_max_output_tokens,
    check_response_mime_type,
    check_stop_sequences,
    check_temperature,
    check_top_k,
    check_top_p,
)
from .part import FileReference, InlineData, Part, Text, mime_type_violations
from .request import GenerateContentRequest
from .role import Role
from .safety import DEFAULT_SAFETY_SETTINGS, HarmBlockThreshold, HarmCategory, SafetySetting
from .tool_config import FunctionCallingMode, ToolConfig
from .turn import Turn

_SCHEMA_NODE_TYPES = (PrimitiveSchema, ArraySchema, ObjectSchema, EnumSchema)


def _as_part(value: "Part | str") -> Any:
    return Text(value) if isinstance(value, str) else value


class GenerateContentRequestBuilder:
    """Accumulates turns and configuration; ``build()`` validates everything."""

    def __init__(self) -> None:
        self._model: Optional[str] = None
        self._turns: List[Tuple[Role, List[Any]]] = []
        self._system: Optional[List[Any]] = None
        self._config: Dict[str, Any] = {}
        self._functions: List[FunctionDeclaration] = []
        self._tool_config: Optional[ToolConfig] = None
        self._safety: Dict[HarmCategory, SafetySetting] = {s.category: s for s in DEFAULT_SAFETY_SETTINGS}
        self._code_execution = False
        self._violations: List[str] = []

    # ------------------------------------------------------------ recording
    def _record(self, violations: List[str]) -> bool:
        self._violations.extend(violations)
        return not violations

    def _set(self, key: str, value: Any, violations: List[str]) -> "GenerateContentRequestBuilder":
        if self._record(violations):
            self._config[key] = value
        return self

    # --------------------------------------------------------------- content
    def model(self, name: str) -> "GenerateContentRequestBuilder":
        if not isinstance(name, str) or not name.strip():
            self._record(["model name must be non-empty"])
        else:
            self._model = name.strip()
        return self

    def system_instruction(self, *parts: "Part | str") -> "GenerateContentRequestBuilder":
        self._system = [_as_part(p) for p in parts]
        return self

    def turn(self, turn: Turn) -> "GenerateContentRequestBuilder":
        self._turns.append((turn.role, list(turn.parts)))
        return self

    def turns(self, turns: Iterable[Turn]) -> "GenerateContentRequestBuilder":
        for t in turns:
            self.turn(t)
        return self

    def message(self, role: "Role | str", *parts: "Part | str") -> "GenerateContentRequestBuilder":
        """Append a turn; role/part compatibility is checked at ``build()``."""
        try:
            parsed = Role.parse(role)
        except ValueError:
            self._record([f"unknown role {role!r}"])
            return self
        self._turns.append((parsed, [_as_part(p) for p in parts]))
        return self

    def user_turn(self, *parts: "Part | str") -> "GenerateContentRequestBuilder":
        return self.message(Role.USER, *parts)

    def model_turn(self, *parts: "Part | str") -> "GenerateContentRequestBuilder":
        return self.message(Role.MODEL, *parts)

    def function_turn(self, *parts: Part) -> "GenerateContentRequestBuilder":
        return self.message(Role.FUNCTION, *parts)

    def _append_user_part(self, part: Any) -> None:
        if self._turns and self._turns[-1][0] is Role.USER:
            self._turns[-1][1].append(part)
        else:
            self._turns.append((Role.USER, [part]))

    def attach(self, mime_type: str, data: bytes) -> "GenerateContentRequestBuilder":
        """Attach inline binary data to the current user turn."""
        violations = mime_type_violations(mime_type)
        if not isinstance(data, (bytes, bytearray, memoryview)):
            violations.append("inline data must be bytes")
        if self._record(violations):
            self._append_user_part(InlineData(mime_type, data))
        return self

    def attach_file(self, uri: str, mime_type: str) -> "GenerateContentRequestBuilder":
        """Attach an uploaded file reference to the current user turn."""
        violations = mime_type_violations(mime_type)
        if not isinstance(uri, str) or not uri.strip():
            violations.insert(0, "file uri must be non-empty")
        if self._record(violations):
            self._append_user_part(FileReference(uri, mime_type))
        return self

    # -------------------------------------------------------------- sampling
    def temperature(self, value: float) -> "GenerateContentRequestBuilder":
        return self._set("temperature", value, check_temperature(value))

    def top_p(self, value: float) -> "GenerateContentRequestBuilder":
        return self._set("top_p", value, check_top_p(value))

    def top_k(self, value: int) -> "GenerateContentRequestBuilder":
        return self._set("top_k", value, check_top_k(value))

    def max_output_tokens(self, value: int) -> "GenerateContentRequestBuilder":
        return self._set("max_output_tokens", value, check_max_output_tokens(value))

    def candidate_count(self, value: int) -> "GenerateContentRequestBuilder":
        return self._set("candidate_count", value, check_candidate_count(value))

    def stop_sequences(self, *values: str) -> "GenerateContentRequestBuilder":
        return self._set("stop_sequences", tuple(values), check_stop_sequences(list(values)))

    def response_mime_type(self, value: str) -> "GenerateContentRequestBuilder":
        return self._set("response_mime_type", value, check_response_mime_type(value))

    def response_schema(self, schema: Any) -> "GenerateContentRequestBuilder":
        """Constrain output to ``schema`` (a ``SchemaNode`` or a Python type)."""
        if isinstance(schema, _SCHEMA_NODE_TYPES):
            self._config["response_schema"] = schema
            return self
        try:
            node: SchemaNode = schema_from_type(schema)
        except ValidationError as exc:
            self._record([f"response_schema: {v}" for v in exc.violations])
            return self
        self._config["response_schema"] = node
        return self

    def response_json_schema(self, schema: Dict[str, Any]) -> "GenerateContentRequestBuilder":
        """Constrain output with a raw JSON Schema document (passed through verbatim)."""
        violations = [] if isinstance(schema, dict) else ["response_json_schema must be a JSON object"]
        return self._set("response_json_schema", schema, violations)

    def generation_config(self, config: GenerationConfig) -> "GenerateContentRequestBuilder":
        """Merge every non-empty field of ``config``."""
        self._record(config.violations())
        for key in GenerationConfig.__dataclass_fields__:
            value = getattr(config, key)
            if value is not None and value != ():
                self._config[key] = value
        return self

    # ----------------------------------------------------------------- tools
    def function(self, declaration: FunctionDeclaration) -> "GenerateContentRequestBuilder":
        self._functions.append(declaration)
        return self

    def functions(self, declarations: Iterable[FunctionDeclaration]) -> "GenerateContentRequestBuilder":
        for d in declarations:
            self.function(d)
        return self

    def tool_config(self, config: ToolConfig) -> "GenerateContentRequestBuilder":
        self._tool_config = config
        return self

    def function_calling(
        self,
        mode: "FunctionCallingMode | str",
        allowed_function_names: Sequence[str] = (),
    ) -> "GenerateContentRequestBuilder":
        try:
            parsed = FunctionCallingMode(str(getattr(mode, "value", mode)).upper())
        except ValueError:
            self._record([f"unknown function calling mode {mode!r}"])
            return self
        self._tool_config = ToolConfig(parsed, tuple(allowed_function_names))
        return self

    def code_execution(self, enabled: bool = True) -> "GenerateContentRequestBuilder":
        self._code_execution = enabled
        return self

    # ---------------------------------------------------------------- safety
    def safety_setting(
        self, category: "HarmCategory | str", threshold: "HarmBlockThreshold | str"
    ) -> "GenerateContentRequestBuilder":
        try:
            setting = SafetySetting(HarmCategory(category), HarmBlockThreshold(threshold))
        except ValueError as exc:
            self._record([f"invalid safety setting: {exc}"])
            return self
        self._safety[setting.category] = setting
        return self

    def safety_settings(self, settings: Iterable[SafetySetting]) -> "GenerateContentRequestBuilder":
        """Replace all safety settings (an empty iterable sends none)."""
        self._safety = {s.category: s for s in settings}
        return self

    # ----------------------------------------------------------------- build
    def _cross_field_violations(self) -> List[str]:
        out: List[str] = []
        if self._model is None:
            out.append("model is not set")
        if not self._turns:
            out.append("request needs at least one turn")
        for i, (role, parts) in enumerate(self._turns):
            out += Turn.violations(role, parts, label=f"turn {i}")
        if self._system is not None:
            if not self._system:
                out.append("system instruction has no parts")
            elif not all(isinstance(p, Text) for p in self._system):
                out.append("system instruction must contain text parts only")

        has_schema = "response_schema" in self._config
        has_json_schema = "response_json_schema" in self._config
        if has_schema and has_json_schema:
            out.append("at most one of response_schema and response_json_schema may be set")
        mime = self._config.get("response_mime_type")
        if (has_schema or has_json_schema) and mime is not None and mime != JSON_MIME_TYPE:
            out.append(f"a response schema requires response_mime_type '{JSON_MIME_TYPE}', got {mime!r}")

        names = [f.name for f in self._functions]
        seen = set()
        for name in names:
            if name in seen:
                out.append(f"function {name!r} is declared more than once")
            seen.add(name)
        if self._tool_config is not None:
            for name in self._tool_config.allowed_function_names:
                if name not in seen:
                    out.append(f"allowed function {name!r} is not declared")
            if self._tool_config.mode is FunctionCallingMode.ANY and not self._functions:
                out.append("function calling mode ANY requires at least one declared function")
        return out

    def build(self) -> GenerateContentRequest:
        """Validate and return the immutable request.

        Raises:
            ValidationError: listing every local and cross-field violation.
        """
        violations = self._violations + self._cross_field_violations()
        if violations:
            raise ValidationError(violations=violations)
        config = dict(self._config)
        if ("response_schema" in config or "response_json_schema" in config) and "response_mime_type" not in config:
            config["response_mime_type"] = JSON_MIME_TYPE
        system = None
        if self._system is not None:
            system = "".join(p.text for p in self._system)
        return GenerateContentRequest(
            model=self._model or "",
            turns=tuple(Turn(role, tuple(parts)) for role, parts in self._turns),
            system_instruction=system,
            generation_config=GenerationConfig(**config),
            functions=tuple(self._functions),
            tool_config=self._tool_config,
            safety_settings=tuple(self._safety.values()),
            code_execution=self._code_execution,
        )


__all__ = ["GenerateContentRequestBuilder"]
