"""Request builder validation and wire shape."""

from __future__ import annotations

from typing import List

import pytest
from pydantic import BaseModel

from gemini_ox.base.errors import ValidationError
from gemini_ox.base.models import (
    DEFAULT_SAFETY_SETTINGS,
    FunctionCall,
    FunctionCallingMode,
    FunctionDeclaration,
    FunctionResponse,
    GenerateContentRequest,
    GenerationConfig,
    HarmBlockThreshold,
    HarmCategory,
    Role,
    Turn,
)
from gemini_ox.base.schema import ObjectSchema, integer, object_of, string


class Answer(BaseModel):
    answer: str
    confidence: float


def _weather() -> FunctionDeclaration:
    return FunctionDeclaration("get_weather", "Current weather", object_of({"city": string()}))


def _builder():
    return GenerateContentRequest.builder().model("gemini-1.5-flash")


def test_minimal_request():
    request = _builder().user_turn("2+2?").build()
    assert request.model == "gemini-1.5-flash"  # nosec B101 - asserts are appropriate in unit tests
    assert request.turns == (Turn.user("2+2?"),)  # nosec B101 - asserts are appropriate in unit tests
    assert request.safety_settings == DEFAULT_SAFETY_SETTINGS  # nosec B101 - asserts are appropriate in unit tests
    wire = request.to_wire()
    assert wire["contents"] == [{"role": "user", "parts": [{"text": "2+2?"}]}]  # nosec B101 - asserts are appropriate in unit tests
    assert "generationConfig" not in wire  # nosec B101 - asserts are appropriate in unit tests
    assert "tools" not in wire  # nosec B101 - asserts are appropriate in unit tests
    assert wire["safetySettings"][0] == {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_NONE"}  # nosec B101 - asserts are appropriate in unit tests


def test_zero_turns_rejected():
    with pytest.raises(ValidationError) as info:
        _builder().build()
    assert info.value.violations == ["request needs at least one turn"]  # nosec B101 - asserts are appropriate in unit tests


def test_all_violations_reported_together():
    builder = (
        GenerateContentRequest.builder()
        .temperature(3.0)
        .top_p(-0.1)
        .top_k(0)
        .candidate_count(2)
        .stop_sequences("a", "b", "c", "d", "e", "f")
    )
    with pytest.raises(ValidationError) as info:
        builder.build()
    violations = info.value.violations
    assert len(violations) == 7  # nosec B101 - asserts are appropriate in unit tests
    assert violations[0].startswith("temperature")  # nosec B101 - asserts are appropriate in unit tests
    assert "model is not set" in violations  # nosec B101 - asserts are appropriate in unit tests
    assert "request needs at least one turn" in violations  # nosec B101 - asserts are appropriate in unit tests


def test_role_part_mismatch_reported_with_turn_index():
    builder = _builder().user_turn("hi").message(Role.USER, FunctionCall("f")).function_turn()
    with pytest.raises(ValidationError) as info:
        builder.build()
    assert info.value.violations == [  # nosec B101 - asserts are appropriate in unit tests
        "turn 1 part 0: FunctionCall is not allowed for role 'user'",
        "turn 2 (function) has no parts",
    ]


def test_unknown_role_recorded():
    with pytest.raises(ValidationError) as info:
        _builder().message("narrator", "once upon a time").user_turn("x").build()
    assert info.value.violations == ["unknown role 'narrator'"]  # nosec B101 - asserts are appropriate in unit tests


def test_multi_turn_conversation_with_function_round_trip():
    request = (
        _builder()
        .user_turn("weather in Paris?")
        .model_turn(FunctionCall("get_weather", {"city": "Paris"}))
        .function_turn(FunctionResponse("get_weather", {"temp": 21}))
        .function(_weather())
        .build()
    )
    roles = [t["role"] for t in request.to_wire()["contents"]]
    assert roles == ["user", "model", "function"]  # nosec B101 - asserts are appropriate in unit tests


def test_response_schema_implies_json_mime_type():
    request = _builder().user_turn("rate it").response_schema(Answer).build()
    config = request.to_wire()["generationConfig"]
    assert config["responseMimeType"] == "application/json"  # nosec B101 - asserts are appropriate in unit tests
    assert config["responseSchema"]["propertyOrdering"] == ["answer", "confidence"]  # nosec B101 - asserts are appropriate in unit tests
    assert isinstance(request.response_schema, ObjectSchema)  # nosec B101 - asserts are appropriate in unit tests


def test_response_schema_conflicting_mime_type():
    with pytest.raises(ValidationError) as info:
        _builder().user_turn("x").response_mime_type("text/plain").response_schema(integer()).build()
    assert "application/json" in info.value.violations[0]  # nosec B101 - asserts are appropriate in unit tests


def test_both_schema_kinds_rejected():
    builder = _builder().user_turn("x").response_schema(string()).response_json_schema({"type": "string"})
    with pytest.raises(ValidationError) as info:
        builder.build()
    assert info.value.violations == ["at most one of response_schema and response_json_schema may be set"]  # nosec B101 - asserts are appropriate in unit tests


def test_unsupported_response_schema_type_recorded():
    with pytest.raises(ValidationError) as info:
        _builder().user_turn("x").response_schema(dict).build()
    assert info.value.violations[0].startswith("response_schema:")  # nosec B101 - asserts are appropriate in unit tests


def test_any_mode_requires_functions():
    with pytest.raises(ValidationError) as info:
        _builder().user_turn("x").function_calling(FunctionCallingMode.ANY).build()
    assert info.value.violations == ["function calling mode ANY requires at least one declared function"]  # nosec B101 - asserts are appropriate in unit tests


def test_allowed_names_must_be_declared():
    builder = _builder().user_turn("x").function(_weather()).function_calling("any", ["get_weather", "get_time"])
    with pytest.raises(ValidationError) as info:
        builder.build()
    assert info.value.violations == ["allowed function 'get_time' is not declared"]  # nosec B101 - asserts are appropriate in unit tests


def test_duplicate_function_rejected():
    with pytest.raises(ValidationError) as info:
        _builder().user_turn("x").functions([_weather(), _weather()]).build()
    assert info.value.violations == ["function 'get_weather' is declared more than once"]  # nosec B101 - asserts are appropriate in unit tests


def test_tools_and_tool_config_wire():
    request = (
        _builder()
        .user_turn("x")
        .function(_weather())
        .function(FunctionDeclaration("now", "Current time"))
        .function_calling("ANY", ["get_weather"])
        .code_execution()
        .build()
    )
    wire = request.to_wire()
    assert wire["tools"] == [  # nosec B101 - asserts are appropriate in unit tests
        {
            "functionDeclarations": [
                {
                    "name": "get_weather",
                    "description": "Current weather",
                    "parameters": {
                        "type": "OBJECT",
                        "properties": {"city": {"type": "STRING"}},
                        "propertyOrdering": ["city"],
                        "required": ["city"],
                    },
                },
                {"name": "now", "description": "Current time"},
            ]
        },
        {"codeExecution": {}},
    ]
    assert wire["toolConfig"] == {  # nosec B101 - asserts are appropriate in unit tests
        "functionCallingConfig": {"mode": "ANY", "allowedFunctionNames": ["get_weather"]}
    }
    assert request.function_schemas() == {"get_weather": _weather().parameters}  # nosec B101 - asserts are appropriate in unit tests


def test_system_instruction_text_only():
    request = _builder().system_instruction("Be terse.").user_turn("x").build()
    assert request.to_wire()["systemInstruction"] == {"parts": [{"text": "Be terse."}]}  # nosec B101 - asserts are appropriate in unit tests
    with pytest.raises(ValidationError):
        _builder().system_instruction(FunctionCall("f")).user_turn("x").build()


def test_attachments_join_current_user_turn():
    request = _builder().user_turn("describe").attach("image/png", b"1").attach_file("files/a", "application/pdf").build()
    assert len(request.turns) == 1  # nosec B101 - asserts are appropriate in unit tests
    assert len(request.turns[0].parts) == 3  # nosec B101 - asserts are appropriate in unit tests


def test_bad_attachment_recorded_until_build():
    builder = GenerateContentRequest.builder().attach("image/png", "not-bytes").attach("png", b"1")
    with pytest.raises(ValidationError) as info:
        builder.build()
    assert info.value.violations == [  # nosec B101 - asserts are appropriate in unit tests
        "inline data must be bytes",
        "mime_type 'png' is not a valid MIME type",
        "model is not set",
        "request needs at least one turn",
    ]


def test_safety_override_and_generation_config_merge():
    request = (
        _builder()
        .user_turn("x")
        .safety_setting(HarmCategory.HATE_SPEECH, HarmBlockThreshold.BLOCK_ONLY_HIGH)
        .generation_config(GenerationConfig(temperature=0.2, max_output_tokens=64, stop_sequences=("END",)))
        .build()
    )
    wire = request.to_wire()
    thresholds = {s["category"]: s["threshold"] for s in wire["safetySettings"]}
    assert thresholds["HARM_CATEGORY_HATE_SPEECH"] == "BLOCK_ONLY_HIGH"  # nosec B101 - asserts are appropriate in unit tests
    assert wire["generationConfig"] == {  # nosec B101 - asserts are appropriate in unit tests
        "stopSequences": ["END"],
        "maxOutputTokens": 64,
        "temperature": 0.2,
    }


def test_invalid_safety_setting_recorded():
    with pytest.raises(ValidationError) as info:
        _builder().user_turn("x").safety_setting("HARM_CATEGORY_BOREDOM", "BLOCK_NONE").build()
    assert info.value.violations[0].startswith("invalid safety setting")  # nosec B101 - asserts are appropriate in unit tests


def test_model_path_strips_prefix():
    request = GenerateContentRequest.builder().model("models/gemini-1.5-pro").user_turn("x").build()
    assert request.model_path == "gemini-1.5-pro"  # nosec B101 - asserts are appropriate in unit tests


def test_request_is_immutable():
    request = _builder().user_turn("x").build()
    with pytest.raises(AttributeError):
        request.model = "other"  # type: ignore[misc]


def test_function_declaration_from_type():
    class Search(BaseModel):
        query: str
        limit: int = 10
        tags: List[str] = []

    decl = FunctionDeclaration.from_type("search", "Search the web", Search)
    assert decl.parameters.required == ("query",)  # nosec B101 - asserts are appropriate in unit tests
    with pytest.raises(ValidationError):
        FunctionDeclaration.from_type("bad", "", int)
