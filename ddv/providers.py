"""
Data providers for the viewer.

Protocols define the interface to the backing table store; implementations
can be swapped for testing or alternative stores.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol


@dataclass(frozen=True)
class Table:
    """A table name as returned by list_tables."""

    name: str


@dataclass(frozen=True)
class KeySchema:
    """Primary key of a table: hash key plus optional range key."""

    hash_key: str
    range_key: str | None = None

    def key_names(self) -> tuple[str, ...]:
        if self.range_key:
            return (self.hash_key, self.range_key)
        return (self.hash_key,)


@dataclass(frozen=True)
class SecondaryIndex:
    """Immutable snapshot of a local or global secondary index."""

    name: str
    key_schema: KeySchema
    projection_type: str
    non_key_attributes: tuple[str, ...] = ()
    size_bytes: int = 0
    item_count: int = 0
    arn: str = ""


@dataclass(frozen=True)
class TableDescription:
    """Immutable snapshot of describe_table output."""

    name: str
    key_schema: KeySchema
    attribute_definitions: tuple[tuple[str, str], ...]
    status: str
    item_count: int = 0
    size_bytes: int = 0
    arn: str = ""
    created_at: datetime | None = None
    read_capacity: int | None = None
    write_capacity: int | None = None
    local_indexes: tuple[SecondaryIndex, ...] = ()
    global_indexes: tuple[SecondaryIndex, ...] = ()


@dataclass(frozen=True)
class Item:
    """One item: attribute name to typed value, in wire format.

    Values keep the store's type tags, e.g. ``{"S": "abc"}`` or
    ``{"N": "42"}``, so no type information is lost between listing,
    rendering and writing the item back.
    """

    attributes: dict[str, dict[str, Any]] = field(default_factory=dict)

    def get(self, name: str) -> dict[str, Any] | None:
        return self.attributes.get(name)

    def key(self, schema: KeySchema) -> dict[str, dict[str, Any]]:
        """Primary key attributes of this item."""
        return {
            name: self.attributes[name]
            for name in schema.key_names()
            if name in self.attributes
        }


@dataclass(frozen=True)
class StorePage:
    """One page of results from the store.

    ``next_token`` is the store's opaque continuation token, or None when
    there are no further pages.
    """

    rows: tuple[Any, ...]
    next_token: Any = None


class DataStore(Protocol):
    """Protocol for the backing table store."""

    def list_tables(self, token: Any = None, limit: int | None = None) -> StorePage:
        """List one page of table names."""
        ...

    def describe_table(self, name: str) -> TableDescription:
        """Describe a table's schema and metadata."""
        ...

    def query_or_scan(
        self,
        table: str,
        item_filter: Any = None,
        token: Any = None,
        limit: int | None = None,
    ) -> StorePage:
        """Fetch one page of items, optionally filtered."""
        ...

    def put_item(self, table: str, item: Item) -> None:
        """Write an item, replacing any item with the same key."""
        ...

    def delete_item(self, table: str, key: dict[str, dict[str, Any]]) -> None:
        """Delete the item with the given primary key."""
        ...
