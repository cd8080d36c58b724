"""Tests for the data model helpers."""

import pytest

from promptshaper.models import (ParseResult, ValueType, Variable,
                                 variables_from_json)


def test_variables_from_json():
    variables = variables_from_json({"count": 3, "ratio": 0.5, "name": "World"})
    assert variables["count"] == Variable(name="count", type=ValueType.number, value=3)
    assert variables["ratio"].type == ValueType.number
    assert variables["name"].type == ValueType.string
    assert variables["name"].params == []


@pytest.mark.parametrize("value", [True, None, [1, 2], {"a": 1}])
def test_variables_from_json_rejects_other_types(value):
    with pytest.raises(ValueError):
        variables_from_json({"bad": value})


def test_variables_from_json_requires_object():
    with pytest.raises(ValueError):
        variables_from_json([1, 2, 3])


def test_sections_validate_from_dicts():
    parsed = ParseResult.model_validate(
        {
            "text": "Hi {{name}}",
            "sections": [
                {"kind": "text", "span": {"start": 0, "end": 3}},
                {"kind": "slot", "span": {"start": 3, "end": 11}, "variable_name": "name"},
            ],
        }
    )
    assert [type(s).__name__ for s in parsed.sections] == ["TextSection", "SlotSection"]
    assert parsed.slots[0].raw is False
    assert parsed.has_tags
