"""
Helpers for typed attribute values.

Values are kept in the store's wire format: a single-entry dict mapping a
type tag (S, N, B, BOOL, NULL, L, M, SS, NS, BS) to its payload. These
helpers render them for the list and detail views and convert them to and
from the two JSON presentations (plain and raw/typed).
"""

from __future__ import annotations

import base64
import json
from collections import Counter
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from ddv.providers import Item, KeySchema, TableDescription

UNDEFINED = "undefined"

TYPE_TAGS = ("S", "N", "B", "BOOL", "NULL", "L", "M", "SS", "NS", "BS")


def type_tag(value: dict[str, Any]) -> str:
    """Return the type tag of a wire value, e.g. ``"S"``."""
    if len(value) != 1:
        raise ValueError(f"Not a typed attribute value: {value!r}")
    tag = next(iter(value))
    if tag not in TYPE_TAGS:
        raise ValueError(f"Unknown attribute type: {tag}")
    return tag


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _number(text: str) -> int | float | str:
    """Convert a number string to a JSON value without losing digits.

    Integers of any size stay ints. Fractions become floats only when the
    float prints back as the same decimal; otherwise the exact text is kept.
    """
    try:
        d = Decimal(text)
    except InvalidOperation:
        return text
    if not d.is_finite():
        return text
    if d == d.to_integral_value():
        return int(d)
    f = float(d)
    if Decimal(repr(f)) == d:
        return f
    return str(d)


def _sorted_numbers(values: Iterable[str]) -> list[str]:
    return sorted(values, key=Decimal)


def to_simple_string(value: dict[str, Any]) -> str:
    """One-line rendering used in table cells."""
    tag = type_tag(value)
    payload = value[tag]
    if tag == "S":
        return payload
    if tag == "N":
        return str(payload)
    if tag == "B":
        return f"Blob ({len(payload)})"
    if tag == "BOOL":
        return "true" if payload else "false"
    if tag == "NULL":
        return "null"
    if tag == "L":
        return "[" + ", ".join(to_simple_string(v) for v in payload) + "]"
    if tag == "M":
        inner = ", ".join(
            f"{k}: {to_simple_string(payload[k])}" for k in sorted(payload)
        )
        return "{" + inner + "}"
    if tag == "SS":
        return "[" + ", ".join(sorted(payload)) + "]"
    if tag == "NS":
        return "[" + ", ".join(_sorted_numbers(payload)) + "]"
    # BS
    return "[" + ", ".join(f"Blob ({len(b)})" for b in sorted(payload)) + "]"


def to_plain(value: dict[str, Any]) -> Any:
    """Untyped JSON-compatible value (types dropped)."""
    tag = type_tag(value)
    payload = value[tag]
    if tag == "S":
        return payload
    if tag == "N":
        return _number(payload)
    if tag == "B":
        return _b64(payload)
    if tag == "BOOL":
        return bool(payload)
    if tag == "NULL":
        return None
    if tag == "L":
        return [to_plain(v) for v in payload]
    if tag == "M":
        return {k: to_plain(payload[k]) for k in sorted(payload)}
    if tag == "SS":
        return sorted(payload)
    if tag == "NS":
        return [_number(n) for n in _sorted_numbers(payload)]
    return [_b64(b) for b in sorted(payload)]


def to_raw(value: dict[str, Any]) -> dict[str, Any]:
    """Typed JSON-compatible value, e.g. ``{"N": 42}``."""
    tag = type_tag(value)
    payload = value[tag]
    if tag == "NULL":
        return {"NULL": True}
    if tag == "L":
        return {"L": [to_raw(v) for v in payload]}
    if tag == "M":
        return {"M": {k: to_raw(payload[k]) for k in sorted(payload)}}
    return {tag: to_plain(value)}


def from_raw(obj: Any) -> dict[str, Any]:
    """Inverse of :func:`to_raw`: typed JSON back to wire format.

    Raises ValueError when the object is not a typed value.
    """
    if not isinstance(obj, dict) or len(obj) != 1:
        raise ValueError(f"Expected a single-key typed value, got {obj!r}")
    tag, payload = next(iter(obj.items()))
    if tag == "S":
        return {"S": str(payload)}
    if tag == "N":
        return {"N": str(payload)}
    if tag == "B":
        return {"B": base64.b64decode(payload)}
    if tag == "BOOL":
        return {"BOOL": bool(payload)}
    if tag == "NULL":
        return {"NULL": True}
    if tag == "L":
        return {"L": [from_raw(v) for v in payload]}
    if tag == "M":
        return {"M": {k: from_raw(v) for k, v in payload.items()}}
    if tag == "SS":
        return {"SS": [str(s) for s in payload]}
    if tag == "NS":
        return {"NS": [str(n) for n in payload]}
    if tag == "BS":
        return {"BS": [base64.b64decode(b) for b in payload]}
    raise ValueError(f"Unknown attribute type: {tag}")


def list_attribute_keys(items: Iterable[Item], schema: KeySchema | None) -> list[str]:
    """Union of attribute names: hash key, range key, then the rest sorted."""
    names: set[str] = set()
    for item in items:
        names.update(item.attributes)
    leading = [k for k in (schema.key_names() if schema else ()) if k in names]
    rest = sorted(names.difference(leading))
    return leading + rest


def key_string(item: Item, schema: KeySchema) -> str:
    """Human-readable primary key, e.g. ``"user-1 / 2024-01-01"``."""
    parts = []
    for name in schema.key_names():
        value = item.get(name)
        parts.append(to_simple_string(value) if value is not None else "-")
    return " / ".join(parts)


def item_from_raw_json(text: str) -> Item:
    """Parse the raw (typed) JSON document of an item."""
    # Decimal keeps fractions exact; ints are already arbitrary precision.
    obj = json.loads(text, parse_float=Decimal)
    if not isinstance(obj, dict):
        raise ValueError("Item JSON must be an object")
    return Item({name: from_raw(value) for name, value in obj.items()})


def item_plain_json(item: Item, schema: KeySchema | None) -> str:
    keys = list_attribute_keys([item], schema)
    return json.dumps({k: to_plain(item.attributes[k]) for k in keys}, indent=2)


def item_raw_json(item: Item, schema: KeySchema | None) -> str:
    keys = list_attribute_keys([item], schema)
    return json.dumps({k: to_raw(item.attributes[k]) for k in keys}, indent=2)


def attribute_raw_json(value: dict[str, Any]) -> str:
    return json.dumps(to_raw(value), indent=2)


@dataclass(frozen=True)
class AttributeDistribution:
    """Count of each type tag seen for one attribute name."""

    name: str
    counts: tuple[tuple[str, int], ...]


@dataclass(frozen=True)
class TableInsight:
    """Type distribution over the rows loaded so far."""

    table_name: str
    total_items: int
    distributions: tuple[AttributeDistribution, ...]


def build_insight(
    table_name: str,
    items: list[Item],
    description: TableDescription | None = None,
) -> TableInsight:
    schema = description.key_schema if description else None
    distributions = []
    for name in list_attribute_keys(items, schema):
        counter: Counter[str] = Counter()
        for item in items:
            value = item.get(name)
            counter[type_tag(value) if value is not None else UNDEFINED] += 1
        distributions.append(AttributeDistribution(name, tuple(counter.most_common())))
    return TableInsight(table_name, len(items), tuple(distributions))
