"""Unit tests for typed attribute rendering and conversion."""

import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))
from ddv.attributes import (
    UNDEFINED,
    build_insight,
    from_raw,
    item_from_raw_json,
    item_plain_json,
    item_raw_json,
    key_string,
    list_attribute_keys,
    to_plain,
    to_raw,
    to_simple_string,
    type_tag,
)
from ddv.providers import Item, KeySchema

SCHEMA = KeySchema("pk", "sk")


class TestTypeTag:
    """Tests for type_tag."""

    def test_known_tags(self) -> None:
        assert type_tag({"S": "x"}) == "S"
        assert type_tag({"BOOL": True}) == "BOOL"

    @pytest.mark.parametrize("value", [{}, {"S": "a", "N": "1"}, {"X": 1}])
    def test_invalid_values(self, value) -> None:
        with pytest.raises(ValueError):
            type_tag(value)


class TestSimpleString:
    """Tests for one-line cell rendering."""

    @pytest.mark.parametrize("value,expected", [
        ({"S": "hello"}, "hello"),
        ({"N": "42"}, "42"),
        ({"B": b"\x00\x01\x02"}, "Blob (3)"),
        ({"BOOL": False}, "false"),
        ({"NULL": True}, "null"),
        ({"L": [{"S": "a"}, {"N": "1"}]}, "[a, 1]"),
        ({"M": {"b": {"N": "2"}, "a": {"S": "x"}}}, "{a: x, b: 2}"),
        ({"SS": ["b", "a"]}, "[a, b]"),
        ({"NS": ["10", "9", "-1"]}, "[-1, 9, 10]"),
    ])
    def test_rendering(self, value, expected) -> None:
        assert to_simple_string(value) == expected


class TestJsonForms:
    """Tests for plain and raw JSON presentations."""

    def test_plain_drops_types(self) -> None:
        assert to_plain({"N": "42"}) == 42
        assert to_plain({"N": "1.5"}) == 1.5
        assert to_plain({"B": b"hi"}) == "aGk="
        assert to_plain({"M": {"n": {"NULL": True}}}) == {"n": None}

    def test_raw_keeps_types(self) -> None:
        assert to_raw({"N": "42"}) == {"N": 42}
        assert to_raw({"L": [{"S": "a"}]}) == {"L": [{"S": "a"}]}
        assert to_raw({"NULL": True}) == {"NULL": True}

    def test_raw_round_trip_restores_wire_format(self) -> None:
        value = {"M": {"n": {"N": "7"}, "b": {"B": b"\xff"}, "tags": {"SS": ["x"]}}}
        assert from_raw(to_raw(value)) == value

    @pytest.mark.parametrize("number", [
        "12345678901234567890123456789012345678",
        "-98765432109876543210987654321098765432",
        "0.12345678901234567890",
        "3.14159265358979323846264338327950288",
    ])
    def test_editor_json_keeps_every_digit(self, number) -> None:
        item = Item({"pk": {"S": "a"}, "n": {"N": number}, "ns": {"NS": [number, "1"]}})

        saved = item_from_raw_json(item_raw_json(item, SCHEMA))

        assert saved.get("n") == {"N": number}
        assert sorted(saved.get("ns")["NS"]) == sorted([number, "1"])

    def test_typed_fractions_parse_exactly(self) -> None:
        item = item_from_raw_json('{"n": {"N": 0.12345678901234567890}}')
        assert item.get("n") == {"N": "0.12345678901234567890"}

    def test_plain_json_never_rounds(self) -> None:
        assert to_plain({"N": "12345678901234567890123"}) == 12345678901234567890123
        assert to_plain({"N": "0.12345678901234567890"}) == "0.12345678901234567890"

    def test_from_raw_rejects_untyped(self) -> None:
        with pytest.raises(ValueError):
            from_raw("plain")
        with pytest.raises(ValueError):
            from_raw({"Q": 1})


class TestItems:
    """Tests for whole-item helpers."""

    def test_key_attributes_come_first(self) -> None:
        items = [
            Item({"zeta": {"S": "z"}, "sk": {"N": "1"}, "pk": {"S": "a"}}),
            Item({"alpha": {"S": "x"}, "pk": {"S": "b"}}),
        ]
        assert list_attribute_keys(items, SCHEMA) == ["pk", "sk", "alpha", "zeta"]
        assert list_attribute_keys(items, None) == ["alpha", "pk", "sk", "zeta"]

    def test_key_string(self) -> None:
        item = Item({"pk": {"S": "user-1"}, "sk": {"S": "2024-01-01"}})
        assert key_string(item, SCHEMA) == "user-1 / 2024-01-01"
        assert key_string(Item({"pk": {"S": "x"}}), SCHEMA) == "x / -"

    def test_json_documents(self) -> None:
        item = Item({"pk": {"S": "a"}, "count": {"N": "3"}})

        assert list(json.loads(item_plain_json(item, SCHEMA))) == ["pk", "count"]
        assert json.loads(item_raw_json(item, SCHEMA)) == {"pk": {"S": "a"}, "count": {"N": 3}}

    def test_item_from_raw_json(self) -> None:
        item = item_from_raw_json('{"pk": {"S": "a"}, "count": {"N": 3}}')
        assert item == Item({"pk": {"S": "a"}, "count": {"N": "3"}})

        with pytest.raises(ValueError):
            item_from_raw_json("[1, 2]")
        with pytest.raises(ValueError):
            item_from_raw_json('{"pk": "a"}')


class TestInsight:
    """Tests for build_insight."""

    def test_counts_undefined(self) -> None:
        items = [
            Item({"pk": {"S": "a"}, "v": {"N": "1"}}),
            Item({"pk": {"S": "b"}, "v": {"S": "one"}}),
            Item({"pk": {"S": "c"}}),
        ]
        insight = build_insight("T", items)

        assert insight.total_items == 3
        v = next(d for d in insight.distributions if d.name == "v")
        assert dict(v.counts) == {"N": 1, "S": 1, UNDEFINED: 1}
