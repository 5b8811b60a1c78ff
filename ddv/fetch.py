"""
Paginated fetching against a DataStore.

A fetch is described by a QueryDescriptor and a Cursor and always resolves
to a PageResult; store errors never escape PageFetcher.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from ddv.errors import DdvError, MutationRejected, TransportFailure
from ddv.providers import DataStore, Item

logger = logging.getLogger(__name__)


class CursorState(Enum):
    START = "start"
    MORE = "more"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class Cursor:
    """Position in a paginated result: start, a continuation token, or exhausted."""

    state: CursorState
    token: Any = None

    @classmethod
    def more(cls, token: Any) -> Cursor:
        return cls(CursorState.MORE, token)

    @property
    def is_start(self) -> bool:
        return self.state is CursorState.START

    @property
    def is_exhausted(self) -> bool:
        return self.state is CursorState.EXHAUSTED

    def __str__(self) -> str:
        return self.state.value


START = Cursor(CursorState.START)
EXHAUSTED = Cursor(CursorState.EXHAUSTED)


class QueryKind(Enum):
    TABLE_LIST = "table_list"
    TABLE_DETAIL = "table_detail"
    ITEM_LIST = "item_list"


# attr = value | attr != value | attr ^= value | attr ~= value
_FILTER_RE = re.compile(r"^\s*([^\s=!^~]+)\s*(=|!=|\^=|~=)\s*(.*?)\s*$")

FILTER_OPS = {
    "=": "eq",
    "!=": "ne",
    "^=": "begins_with",
    "~=": "contains",
}


@dataclass(frozen=True)
class ItemFilter:
    """Parsed item filter. ``attribute`` None means the table's hash key."""

    attribute: str | None
    op: str
    value: str
    numeric: bool = False

    @classmethod
    def parse(cls, text: str) -> ItemFilter | None:
        text = text.strip()
        if not text:
            return None
        m = _FILTER_RE.match(text)
        if m is None:
            return cls(None, "contains", text)
        attribute, op, value = m.groups()
        numeric = False
        if value.startswith("#") and op in ("=", "!="):
            candidate = value[1:]
            if re.fullmatch(r"-?\d+(\.\d+)?", candidate):
                value, numeric = candidate, True
        return cls(attribute, FILTER_OPS[op], value, numeric)

    def typed_value(self) -> dict[str, str]:
        return {"N": self.value} if self.numeric else {"S": self.value}


@dataclass(frozen=True)
class QueryDescriptor:
    """What a view shows: kind, table and filter text."""

    kind: QueryKind
    table: str | None = None
    filter_text: str = ""

    @property
    def item_filter(self) -> ItemFilter | None:
        if self.kind is not QueryKind.ITEM_LIST:
            return None
        return ItemFilter.parse(self.filter_text)

    def with_filter(self, text: str) -> QueryDescriptor:
        return QueryDescriptor(self.kind, self.table, text.strip())


@dataclass(frozen=True)
class Page:
    rows: tuple[Any, ...]
    next_cursor: Cursor
    meta: Any = None


@dataclass(frozen=True)
class Exhausted:
    """No request was issued: the cursor had no further pages."""


@dataclass(frozen=True)
class Failed:
    error: DdvError


@dataclass(frozen=True)
class Applied:
    """A mutation succeeded."""


PageResult = Union[Page, Exhausted, Failed]
MutationResult = Union[Applied, Failed]


@dataclass
class PageFetcher:
    """Issues one page request at a time against a DataStore."""

    store: DataStore
    _calls: int = field(default=0, init=False, repr=False)
    # Tasks call fetch from worker threads.
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def calls(self) -> int:
        """Number of page requests issued so far."""
        return self._calls

    def fetch(
        self,
        descriptor: QueryDescriptor,
        cursor: Cursor,
        page_size: int | None = None,
    ) -> PageResult:
        if cursor.is_exhausted:
            return Exhausted()
        with self._lock:
            self._calls += 1
        logger.debug(
            "fetch %s table=%s filter=%r cursor=%s",
            descriptor.kind.value,
            descriptor.table,
            descriptor.filter_text,
            cursor,
        )
        try:
            if descriptor.kind is QueryKind.TABLE_LIST:
                return self._fetch_tables(descriptor, cursor, page_size)
            if descriptor.kind is QueryKind.TABLE_DETAIL:
                desc = self.store.describe_table(descriptor.table)
                return Page((desc,), EXHAUSTED, meta=desc)
            return self._fetch_items(descriptor, cursor, page_size)
        except DdvError as e:
            logger.warning("fetch %s failed: %s", descriptor.kind.value, e)
            return Failed(e)
        except Exception as e:
            logger.exception("unexpected error during fetch")
            return Failed(TransportFailure("Unexpected error while fetching", e))

    def _fetch_tables(
        self, descriptor: QueryDescriptor, cursor: Cursor, page_size: int | None
    ) -> Page:
        needle = descriptor.filter_text.lower()
        token = cursor.token
        while True:
            page = self.store.list_tables(token, page_size)
            rows = tuple(t for t in page.rows if needle in t.name.lower())
            token = page.next_token
            # Keep paging until the name filter yields something.
            if rows or token is None:
                break
        return Page(rows, _next_cursor(token))

    def _fetch_items(
        self, descriptor: QueryDescriptor, cursor: Cursor, page_size: int | None
    ) -> Page:
        meta = None
        if cursor.is_start:
            meta = self.store.describe_table(descriptor.table)
        page = self.store.query_or_scan(
            descriptor.table,
            descriptor.item_filter,
            cursor.token,
            page_size,
        )
        return Page(tuple(page.rows), _next_cursor(page.next_token), meta=meta)

    def put_item(self, table: str, item: Item) -> MutationResult:
        return self._mutate("put", lambda: self.store.put_item(table, item))

    def delete_item(self, table: str, key: dict[str, dict[str, Any]]) -> MutationResult:
        return self._mutate("delete", lambda: self.store.delete_item(table, key))

    def _mutate(self, name: str, call) -> MutationResult:
        # Issued exactly once; never retried.
        try:
            call()
        except MutationRejected as e:
            logger.warning("%s rejected: %s", name, e)
            return Failed(e)
        except DdvError as e:
            logger.warning("%s failed: %s", name, e)
            return Failed(MutationRejected(f"Failed to {name} item", e))
        except Exception as e:
            logger.exception("unexpected error during %s", name)
            return Failed(MutationRejected(f"Failed to {name} item", e))
        return Applied()


def _next_cursor(token: Any) -> Cursor:
    return EXHAUSTED if token is None else Cursor.more(token)
