"""Structural validation of decoded values."""

from __future__ import annotations

import pytest

from gemini_ox.base.errors import SchemaIssue, SchemaMismatch
from gemini_ox.base.schema import (
    array_of,
    boolean,
    check,
    enum_of,
    integer,
    json_type,
    number,
    object_of,
    string,
    validate,
)


def _people():
    return object_of({"items": array_of(object_of({"name": string(), "age": integer()}, required=["name"]))})


def test_valid_value_is_returned_unchanged():
    value = {"items": [{"name": "ada", "age": 36}, {"name": "alan"}]}
    assert validate(value, _people()) is value  # nosec B101 - asserts are appropriate in unit tests


def test_nested_path_points_at_offending_value():
    value = {"items": [{"name": "a"}, {"name": "b"}, {"name": 3}]}
    with pytest.raises(SchemaMismatch) as info:
        validate(value, _people())
    err = info.value
    assert err.path == "root.items[2].name"  # nosec B101 - asserts are appropriate in unit tests
    assert err.expected == "string"  # nosec B101 - asserts are appropriate in unit tests
    assert err.found == "integer"  # nosec B101 - asserts are appropriate in unit tests


def test_every_issue_is_collected():
    value = {"items": [{"age": "old"}, "nope"]}
    issues = check(value, _people())
    assert issues == [  # nosec B101 - asserts are appropriate in unit tests
        SchemaIssue("root.items[0].name", "required property", "missing"),
        SchemaIssue("root.items[0].age", "integer", "string"),
        SchemaIssue("root.items[1]", "object", "string"),
    ]


def test_missing_required_property():
    issues = check({}, object_of({"city": string()}))
    assert issues == [SchemaIssue("root.city", "required property", "missing")]  # nosec B101 - asserts are appropriate in unit tests


def test_open_object_accepts_extra_keys_closed_rejects_them():
    open_schema = object_of({"a": string()})
    closed_schema = object_of({"a": string()}, closed=True)
    value = {"a": "x", "b": 1}
    assert check(value, open_schema) == []  # nosec B101 - asserts are appropriate in unit tests
    assert check(value, closed_schema) == [  # nosec B101 - asserts are appropriate in unit tests
        SchemaIssue("root.b", "no additional properties", "unexpected key")
    ]


def test_enum_membership():
    schema = enum_of("red", "green")
    assert check("red", schema) == []  # nosec B101 - asserts are appropriate in unit tests
    issues = check("blue", schema)
    assert len(issues) == 1  # nosec B101 - asserts are appropriate in unit tests
    assert issues[0].found == "'blue'"  # nosec B101 - asserts are appropriate in unit tests


def test_boolean_enum_does_not_match_integers():
    assert check(1, enum_of(True, False)) != []  # nosec B101 - asserts are appropriate in unit tests
    assert check(True, enum_of(1, 2)) != []  # nosec B101 - asserts are appropriate in unit tests


def test_integer_accepts_integral_floats_but_not_booleans():
    assert check(3.0, integer()) == []  # nosec B101 - asserts are appropriate in unit tests
    assert check(3.5, integer()) != []  # nosec B101 - asserts are appropriate in unit tests
    assert check(True, integer()) != []  # nosec B101 - asserts are appropriate in unit tests
    assert check(True, number()) != []  # nosec B101 - asserts are appropriate in unit tests
    assert check(True, boolean()) == []  # nosec B101 - asserts are appropriate in unit tests


def test_nullable_accepts_null():
    assert check(None, string(nullable=True)) == []  # nosec B101 - asserts are appropriate in unit tests
    assert check(None, string()) == [SchemaIssue("root", "string", "null")]  # nosec B101 - asserts are appropriate in unit tests


def test_array_length_bounds():
    schema = array_of(integer(), min_items=2, max_items=3)
    assert check([1], schema)[0].expected == "at least 2 items"  # nosec B101 - asserts are appropriate in unit tests
    assert check([1, 2, 3, 4], schema)[0].expected == "at most 3 items"  # nosec B101 - asserts are appropriate in unit tests


def test_custom_root_path():
    issues = check({"days": "3"}, object_of({"days": integer()}), "root.get_weather")
    assert issues[0].path == "root.get_weather.days"  # nosec B101 - asserts are appropriate in unit tests


def test_mismatch_message_lists_issues():
    err = SchemaMismatch(issues=[SchemaIssue("root.a", "string", "null")])
    assert err.message == "root.a: expected string, found null"  # nosec B101 - asserts are appropriate in unit tests
    assert str(err) == "schema: root.a: expected string, found null"  # nosec B101 - asserts are appropriate in unit tests


@pytest.mark.parametrize(
    "value,name",
    [(None, "null"), (True, "boolean"), (1, "integer"), (1.5, "number"), ("s", "string"), ([], "array"), ({}, "object")],
)
def test_json_type_names(value, name):
    assert json_type(value) == name  # nosec B101 - asserts are appropriate in unit tests
