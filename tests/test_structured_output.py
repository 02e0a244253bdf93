"""Tests for structured_output.py: fence stripping, repair and schema fallback."""

from __future__ import annotations

from pydantic import BaseModel, Field

from plan_document_generator.structured_output import (
    ParseFailure,
    load_json,
    parse_string_list,
    parse_structured,
    repair_json,
    strip_fences,
)


class _Item(BaseModel):
    name: str
    tags: list[str] = Field(default_factory=list)


class _Doc(BaseModel):
    title: str = ""
    items: list[_Item] = Field(default_factory=list)


_DEFAULT = _Doc(title="fallback")


class TestStripFences:
    def test_json_fence(self):
        assert strip_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain_fence(self):
        assert strip_fences('```\n[1]\n```') == "[1]"


class TestLoadJson:
    def test_surrounding_prose_is_ignored(self):
        data, failure, repaired = load_json('Here is the outline:\n{"title": "X"}\nHope this helps.')
        assert data == {"title": "X"}
        assert failure is None
        assert repaired is False

    def test_empty(self):
        assert load_json("   ")[1] is ParseFailure.EMPTY
        assert load_json(None)[1] is ParseFailure.EMPTY

    def test_garbage(self):
        assert load_json("no json here")[1] is ParseFailure.INVALID_JSON


class TestRepairJson:
    def test_trailing_commas(self):
        assert repair_json('{"a": [1, 2,],}') == '{"a": [1, 2]}'

    def test_truncated_inside_string(self):
        data, failure, repaired = load_json('{"title": "Plan", "items": [{"name": "Mark')
        assert failure is None
        assert repaired is True
        assert data == {"title": "Plan", "items": [{"name": "Mark"}]}

    def test_dangling_key_dropped(self):
        data, failure, _ = load_json('{"title": "Plan", "items": [{"name": "a"}], "extra":')
        assert failure is None
        assert data == {"title": "Plan", "items": [{"name": "a"}]}

    def test_brackets_closed_in_stack_order(self):
        data, failure, _ = load_json('{"items": [{"name": "a", "tags": ["x", "y"')
        assert failure is None
        assert data == {"items": [{"name": "a", "tags": ["x", "y"]}]}

    def test_smart_quotes(self):
        data, failure, _ = load_json('{“title”: “Plan”,}')
        assert failure is None
        assert data == {"title": "Plan"}

    def test_no_brackets(self):
        assert repair_json("nothing") is None


class TestParseStructured:
    def test_valid(self):
        result = parse_structured('{"title": "T", "items": [{"name": "n"}]}', _Doc, default=_DEFAULT)
        assert result.ok
        assert result.value.items[0].name == "n"

    def test_fenced_and_truncated(self):
        raw = '```json\n{"title": "T", "items": [{"name": "n", "tags": ["a"'
        result = parse_structured(raw, _Doc, default=_DEFAULT)
        assert result.ok
        assert result.repaired
        assert result.value.items[0].tags == ["a"]

    def test_invalid_json_returns_default(self):
        result = parse_structured("I cannot help with that.", _Doc, default=_DEFAULT)
        assert result.failure is ParseFailure.INVALID_JSON
        assert result.value is _DEFAULT

    def test_schema_mismatch_returns_default(self):
        result = parse_structured('{"items": [{"tags": "not-a-list"}]}', _Doc, default=_DEFAULT)
        assert result.failure is ParseFailure.SCHEMA_MISMATCH
        assert result.value is _DEFAULT
        assert result.detail

    def test_empty_returns_default(self):
        result = parse_structured("", _Doc, default=_DEFAULT)
        assert result.failure is ParseFailure.EMPTY
        assert not result.ok


class TestParseStringList:
    def test_array(self):
        result = parse_string_list('["smart farming", " IoT ", ""]', default=["x"])
        assert result.value == ["smart farming", "IoT"]

    def test_object_is_schema_mismatch(self):
        result = parse_string_list('{"keywords": []}', default=["x"])
        assert result.failure is ParseFailure.SCHEMA_MISMATCH
        assert result.value == ["x"]

    def test_unparseable(self):
        result = parse_string_list("smart farming, iot", default=["fallback"])
        assert result.value == ["fallback"]
