"""
View state shared by every view kind.

A View is a tagged variant: ``kind`` selects the behaviour from the
dispatch tables in handlers.py and render.py, while the fields below hold
the per-view transient state (rows, cursor, selection, scroll, filter).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from ddv.cache import CacheKey
from ddv.errors import DdvError
from ddv.fetch import START, Cursor, QueryDescriptor, QueryKind
from ddv.providers import Item, KeySchema, TableDescription
from ddv.tasks import FetchTask, MutationOp


class ViewKind(Enum):
    TABLE_LIST = "table_list"
    TABLE_DETAIL = "table_detail"
    ITEM_LIST = "item_list"
    ITEM_DETAIL = "item_detail"
    INSIGHT = "insight"
    HELP = "help"


class FetchStatus(Enum):
    EMPTY = "empty"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class PreviewMode(Enum):
    KEY_VALUE = "key-value"
    PLAIN_JSON = "json"
    RAW_JSON = "raw json"

    def cycle(self, step: int, modes: tuple[PreviewMode, ...] | None = None) -> PreviewMode:
        modes = modes or tuple(PreviewMode)
        return modes[(modes.index(self) + step) % len(modes)]


class FetchMode(Enum):
    ENTER = "enter"
    LOAD_MORE = "load_more"
    REFRESH = "refresh"
    RESTART = "restart"


@dataclass(eq=False)
class View:
    """Runtime state of one entry on the view stack."""

    kind: ViewKind
    descriptor: QueryDescriptor | None = None
    view_id: int = 0
    status: FetchStatus = FetchStatus.EMPTY
    cursor: Cursor = START
    rows: list[Any] = field(default_factory=list)
    selection: int = 0
    column: int | None = None
    scroll: int = 0
    filter_editing: bool = False
    filter_draft: str = ""
    generation: int = 0
    in_flight: FetchTask | None = None
    error: DdvError | None = None
    notice: str | None = None
    meta: Any = None
    preview: PreviewMode = PreviewMode.KEY_VALUE
    expanded: bool = False
    expand_scroll: int = 0
    confirm_delete: bool = False
    item: Item | None = None
    source_rows: list[Item] = field(default_factory=list)
    help_for: ViewKind | None = None
    table_name: str | None = None
    wrap: bool = False
    line_numbers: bool = False
    h_scroll: int = 0
    # Table list only: the description shown beside the list.
    pane: View | None = None
    pane_focused: bool = False

    @classmethod
    def table_list(cls, filter_text: str = "") -> View:
        return cls(ViewKind.TABLE_LIST, QueryDescriptor(QueryKind.TABLE_LIST, None, filter_text))

    @classmethod
    def table_detail(cls, table: str) -> View:
        return cls(ViewKind.TABLE_DETAIL, QueryDescriptor(QueryKind.TABLE_DETAIL, table))

    @classmethod
    def item_list(cls, table: str, filter_text: str = "") -> View:
        return cls(ViewKind.ITEM_LIST, QueryDescriptor(QueryKind.ITEM_LIST, table, filter_text))

    @classmethod
    def item_detail(
        cls, table: str, item: Item, description: TableDescription | None
    ) -> View:
        return cls(ViewKind.ITEM_DETAIL, None, item=item, meta=description, table_name=table)

    @classmethod
    def insight(
        cls, table: str, rows: list[Item], description: TableDescription | None
    ) -> View:
        # Shares the describe-table cache entry with the table detail view.
        return cls(
            ViewKind.INSIGHT,
            QueryDescriptor(QueryKind.TABLE_DETAIL, table),
            meta=description,
            source_rows=list(rows),
        )

    @classmethod
    def help(cls, for_kind: ViewKind) -> View:
        return cls(ViewKind.HELP, help_for=for_kind)

    @property
    def table(self) -> str | None:
        if self.descriptor is not None and self.descriptor.table is not None:
            return self.descriptor.table
        return self.table_name

    @property
    def key(self) -> CacheKey | None:
        if self.descriptor is None:
            return None
        return CacheKey.for_descriptor(self.descriptor)

    @property
    def is_data_bearing(self) -> bool:
        return self.descriptor is not None

    @property
    def filter_text(self) -> str:
        return self.descriptor.filter_text if self.descriptor else ""

    @property
    def description(self) -> TableDescription | None:
        return self.meta if isinstance(self.meta, TableDescription) else None

    @property
    def key_schema(self) -> KeySchema | None:
        desc = self.description
        return desc.key_schema if desc else None

    def selected_row(self) -> Any | None:
        if 0 <= self.selection < len(self.rows):
            return self.rows[self.selection]
        return None


# Effects returned by input handlers and applied by the session.


@dataclass(frozen=True)
class Push:
    view: View


@dataclass(frozen=True)
class Pop:
    pass


@dataclass(frozen=True)
class StartFetch:
    view: View
    mode: FetchMode = FetchMode.ENTER


@dataclass(frozen=True)
class Mutate:
    view: View
    op: MutationOp
    item: Item


@dataclass(frozen=True)
class OpenEditor:
    view: View


@dataclass(frozen=True)
class OpenPane:
    view: View


@dataclass(frozen=True)
class Notify:
    level: str
    message: str


@dataclass(frozen=True)
class Quit:
    pass


Effect = Union[Push, Pop, StartFetch, Mutate, OpenEditor, OpenPane, Notify, Quit]


@dataclass(frozen=True)
class ViewContent:
    """Structured content handed to the rendering layer."""

    kind: ViewKind
    title: str
    columns: tuple[str, ...] = ()
    rows: tuple[tuple[str, ...], ...] = ()
    lines: tuple[str, ...] = ()
    selection: int | None = None
    column: int | None = None
    scroll: int = 0
    summary: str = ""
    loading: bool = False
    error: str | None = None
    notice: str | None = None
    popup: tuple[str, ...] | None = None
    wrap: bool = False
    list_width: int | None = None
    side: tuple[str, ...] | None = None
    side_title: str = ""
    side_scroll: int = 0
    side_wrap: bool = False
    side_focused: bool = False
