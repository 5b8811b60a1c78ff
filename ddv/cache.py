"""
Result cache keyed by query identity.

Entries outlive the views that filled them, so navigating back to a view
renders from what was already fetched instead of issuing new requests.
Entries never expire on their own; they are only dropped by explicit
invalidation or, when a bound is configured, by LRU eviction.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Iterator

from ddv.errors import StaleCursor
from ddv.fetch import START, Cursor, QueryDescriptor, QueryKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheKey:
    """Identity of one query: kind, table and filter text."""

    kind: QueryKind
    table: str | None = None
    filter_text: str = ""

    @classmethod
    def for_descriptor(cls, descriptor: QueryDescriptor) -> CacheKey:
        return cls(descriptor.kind, descriptor.table, descriptor.filter_text)


@dataclass
class CacheEntry:
    """Rows fetched so far for one key plus the cursor of the next page."""

    rows: list[Any] = field(default_factory=list)
    cursor: Cursor = START
    meta: Any = None

    @property
    def is_usable(self) -> bool:
        """True when a view can render from this entry without fetching."""
        return bool(self.rows) or self.cursor.is_exhausted


class ResultCache:
    """Fetched pages keyed by CacheKey, optionally bounded (LRU)."""

    def __init__(self, max_entries: int | None = None) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._entries: OrderedDict[CacheKey, CacheEntry] = OrderedDict()
        self._max_entries = max_entries

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[CacheKey]:
        return iter(list(self._entries))

    def get(self, key: CacheKey) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is not None:
            self._entries.move_to_end(key)
        return entry

    def get_or_start(self, key: CacheKey) -> CacheEntry:
        """Return the entry for key, creating an empty one at cursor start."""
        entry = self.get(key)
        if entry is None:
            entry = CacheEntry()
            self._entries[key] = entry
            self._evict()
        return entry

    def append(
        self,
        key: CacheKey,
        from_cursor: Cursor,
        rows: tuple[Any, ...] | list[Any],
        next_cursor: Cursor,
        meta: Any = None,
    ) -> CacheEntry:
        """Append one page fetched from ``from_cursor``.

        Raises StaleCursor if the entry has moved past ``from_cursor`` (or
        was invalidated and restarted), since appending would duplicate or
        reorder rows.
        """
        entry = self.get_or_start(key)
        if entry.cursor != from_cursor:
            raise StaleCursor(
                f"Page for {key.kind.value}:{key.table} fetched from "
                f"{from_cursor}, entry is at {entry.cursor}"
            )
        entry.rows.extend(rows)
        entry.cursor = next_cursor
        if meta is not None:
            entry.meta = meta
        return entry

    def invalidate(self, key: CacheKey) -> bool:
        removed = self._entries.pop(key, None) is not None
        if removed:
            logger.info("invalidated %s:%s %r", key.kind.value, key.table, key.filter_text)
        return removed

    def invalidate_table(self, table: str, kind: QueryKind | None = None) -> int:
        """Drop every entry for a table (all filters), optionally of one kind."""
        keys = [
            k for k in self._entries
            if k.table == table and (kind is None or k.kind is kind)
        ]
        for key in keys:
            self.invalidate(key)
        return len(keys)

    def _evict(self) -> None:
        if self._max_entries is None:
            return
        while len(self._entries) > self._max_entries:
            key, _ = self._entries.popitem(last=False)
            logger.debug("evicted %s:%s", key.kind.value, key.table)
