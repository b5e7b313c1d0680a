"""
Content parts: the atomic units of a conversation turn.

Each variant is a frozen dataclass that validates its own fields at
construction and raises :class:`ValidationError` listing every local
violation. JSON payloads (function arguments and results) are deep-copied so
a built part cannot be mutated through a reference the caller kept.

Wire form is the service's camelCase JSON; :func:`part_from_wire` decodes it.
"""
from __future__ import annotations

import base64
import binascii
import copy
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from ..errors import ValidationError

_TOKEN = r"[A-Za-z0-9][A-Za-z0-9!#$&^_.+-]{0,126}"
_MIME_RE = re.compile(rf"^{_TOKEN}/{_TOKEN}(\s*;\s*[^;=\s]+=[^;]+)*$")
# Function names: letters, digits, underscore, dot, dash; 64 chars max.
_FUNCTION_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.\-]{0,63}$")


def mime_type_violations(mime_type: Any, field_name: str = "mime_type") -> List[str]:
    if not isinstance(mime_type, str) or not mime_type:
        return [f"{field_name} must be a non-empty string"]
    if not _MIME_RE.match(mime_type):
        return [f"{field_name} {mime_type!r} is not a valid MIME type"]
    return []


def function_name_violations(name: Any, field_name: str = "function name") -> List[str]:
    if not isinstance(name, str) or not name:
        return [f"{field_name} must be a non-empty string"]
    if not _FUNCTION_NAME_RE.match(name):
        return [
            f"{field_name} {name!r} must start with a letter or underscore and contain only "
            "letters, digits, '_', '.', '-' (max 64 characters)"
        ]
    return []


def _raise_if(violations: List[str]) -> None:
    if violations:
        raise ValidationError(violations=violations)


@dataclass(frozen=True)
class Text:
    text: str

    def __post_init__(self) -> None:
        if not isinstance(self.text, str):
            raise ValidationError.single("text must be a string")

    def to_wire(self) -> Dict[str, Any]:
        return {"text": self.text}


@dataclass(frozen=True)
class InlineData:
    """Binary attachment sent inline (base64 on the wire)."""

    mime_type: str
    data: bytes = field(repr=False)

    def __post_init__(self) -> None:
        violations = mime_type_violations(self.mime_type)
        if not isinstance(self.data, (bytes, bytearray, memoryview)):
            violations.append("inline data must be bytes")
        _raise_if(violations)
        object.__setattr__(self, "data", bytes(self.data))

    def to_wire(self) -> Dict[str, Any]:
        return {
            "inlineData": {
                "mimeType": self.mime_type,
                "data": base64.b64encode(self.data).decode("ascii"),
            }
        }


@dataclass(frozen=True)
class FileReference:
    """Reference to a file previously uploaded to the service."""

    uri: str
    mime_type: str

    def __post_init__(self) -> None:
        violations = mime_type_violations(self.mime_type)
        if not isinstance(self.uri, str) or not self.uri.strip():
            violations.insert(0, "file uri must be non-empty")
        _raise_if(violations)

    def to_wire(self) -> Dict[str, Any]:
        return {"fileData": {"mimeType": self.mime_type, "fileUri": self.uri}}


@dataclass(frozen=True)
class FunctionCall:
    """A request by the model to invoke a declared function."""

    name: str
    args: Any = field(default_factory=dict)

    def __post_init__(self) -> None:
        _raise_if(function_name_violations(self.name))
        object.__setattr__(self, "args", copy.deepcopy(self.args))

    def to_wire(self) -> Dict[str, Any]:
        return {"functionCall": {"name": self.name, "args": copy.deepcopy(self.args)}}


@dataclass(frozen=True)
class FunctionResponse:
    """The caller's result for a previous :class:`FunctionCall`."""

    name: str
    response: Any = field(default_factory=dict)

    def __post_init__(self) -> None:
        _raise_if(function_name_violations(self.name))
        object.__setattr__(self, "response", copy.deepcopy(self.response))

    def to_wire(self) -> Dict[str, Any]:
        return {"functionResponse": {"name": self.name, "response": copy.deepcopy(self.response)}}


@dataclass(frozen=True)
class ExecutableCode:
    language: str
    code: str

    def __post_init__(self) -> None:
        violations = []
        if not isinstance(self.language, str) or not self.language:
            violations.append("executable code language must be non-empty")
        if not isinstance(self.code, str):
            violations.append("executable code must be a string")
        _raise_if(violations)

    def to_wire(self) -> Dict[str, Any]:
        return {"executableCode": {"language": self.language, "code": self.code}}


@dataclass(frozen=True)
class CodeExecutionResult:
    outcome: str
    output: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.outcome, str) or not self.outcome:
            raise ValidationError.single("code execution outcome must be non-empty")

    def to_wire(self) -> Dict[str, Any]:
        return {"codeExecutionResult": {"outcome": self.outcome, "output": self.output}}


Part = Union[Text, InlineData, FileReference, FunctionCall, FunctionResponse, ExecutableCode, CodeExecutionResult]
PART_TYPES = (Text, InlineData, FileReference, FunctionCall, FunctionResponse, ExecutableCode, CodeExecutionResult)


def part_from_wire(data: Dict[str, Any]) -> Part:
    """Decode one wire part.

    Raises:
        ValidationError: unknown part shape or invalid field values.
    """
    if not isinstance(data, dict):
        raise ValidationError.single(f"part must be an object, got {type(data).__name__}")
    if "text" in data:
        return Text(data["text"])
    if "inlineData" in data:
        inline = data["inlineData"] or {}
        try:
            raw = base64.b64decode(inline.get("data", ""), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValidationError.single(f"inline data is not valid base64: {exc}") from exc
        return InlineData(inline.get("mimeType", ""), raw)
    if "fileData" in data:
        ref = data["fileData"] or {}
        return FileReference(ref.get("fileUri", ""), ref.get("mimeType", ""))
    if "functionCall" in data:
        call = data["functionCall"] or {}
        return FunctionCall(call.get("name", ""), call.get("args") or {})
    if "functionResponse" in data:
        resp = data["functionResponse"] or {}
        return FunctionResponse(resp.get("name", ""), resp.get("response") or {})
    if "executableCode" in data:
        code = data["executableCode"] or {}
        return ExecutableCode(code.get("language", ""), code.get("code", ""))
    if "codeExecutionResult" in data:
        result = data["codeExecutionResult"] or {}
        return CodeExecutionResult(result.get("outcome", ""), result.get("output", ""))
    raise ValidationError.single(f"unknown part kind with keys {sorted(data)}")


__all__ = [
    "Text",
    "InlineData",
    "FileReference",
    "FunctionCall",
    "FunctionResponse",
    "ExecutableCode",
    "CodeExecutionResult",
    "Part",
    "PART_TYPES",
    "part_from_wire",
    "mime_type_violations",
    "function_name_violations",
]
