"""
Structured content per view kind.

Nothing here touches the terminal: each renderer turns a View into a
ViewContent (title, columns, rows, text lines, selection, scroll, summary)
which the Textual screens draw.
"""

from __future__ import annotations

import json
from dataclasses import replace
from typing import Callable

from ddv.attributes import (
    attribute_raw_json,
    build_insight,
    item_plain_json,
    item_raw_json,
    key_string,
    list_attribute_keys,
    to_simple_string,
    type_tag,
)
from ddv.config import Config
from ddv.keymap import KEY_LABELS, Action, key_hint, keys_for
from ddv.providers import KeySchema, TableDescription
from ddv.views.model import FetchStatus, PreviewMode, View, ViewContent, ViewKind

SPINNER = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"
ELLIPSIS = "..."
UNDEFINED_CELL = "-"

# Table detail has no raw (typed) representation.
DETAIL_PREVIEWS = (PreviewMode.KEY_VALUE, PreviewMode.PLAIN_JSON)
ITEM_PREVIEWS = tuple(PreviewMode)

_NAVIGATION = [
    (Action.SELECT_DOWN, "Move down"),
    (Action.SELECT_UP, "Move up"),
    (Action.PAGE_DOWN, "Page down"),
    (Action.PAGE_UP, "Page up"),
    (Action.GO_TOP, "Go to top"),
    (Action.GO_BOTTOM, "Go to bottom"),
]

_GLOBAL = [
    (Action.TOGGLE_HELP, "Toggle help"),
    (Action.QUIT, "Quit"),
]

_DISPLAY = [
    (Action.SELECT_LEFT, "Scroll left"),
    (Action.SELECT_RIGHT, "Scroll right"),
    (Action.TOGGLE_WRAP, "Toggle line wrap"),
    (Action.TOGGLE_NUMBER, "Toggle line numbers"),
]

HELP_ENTRIES: dict[ViewKind, list[tuple[Action, str]]] = {
    ViewKind.TABLE_LIST: _NAVIGATION + [
        (Action.CONFIRM, "Open table items"),
        (Action.SELECT_RIGHT, "Show table description"),
        (Action.NEXT_PANE, "Switch between list and description pane"),
        (Action.NEXT_PREVIEW, "Next preview mode (description pane)"),
        (Action.TOGGLE_WRAP, "Toggle line wrap (description pane)"),
        (Action.TOGGLE_NUMBER, "Toggle line numbers (description pane)"),
        (Action.FILTER_EDIT, "Filter tables by name"),
        (Action.CANCEL, "Clear filter"),
        (Action.LOAD_MORE, "Load more tables"),
        (Action.REFRESH, "Reload table list"),
    ] + _GLOBAL,
    ViewKind.TABLE_DETAIL: _NAVIGATION + [
        (Action.NEXT_PREVIEW, "Next preview mode"),
        (Action.PREV_PREVIEW, "Previous preview mode"),
        (Action.REFRESH, "Reload description"),
        (Action.BACK, "Back"),
    ] + _DISPLAY + _GLOBAL,
    ViewKind.ITEM_LIST: _NAVIGATION + [
        (Action.SELECT_LEFT, "Select previous column"),
        (Action.SELECT_RIGHT, "Select next column"),
        (Action.FIRST_COLUMN, "Select first column"),
        (Action.LAST_COLUMN, "Select last column"),
        (Action.CONFIRM, "Open item"),
        (Action.EXPAND, "Expand selected attribute"),
        (Action.TOGGLE_WRAP, "Toggle line wrap in popup"),
        (Action.TOGGLE_NUMBER, "Toggle line numbers in popup"),
        (Action.INSIGHT, "Attribute type insight"),
        (Action.FILTER_EDIT, "Filter items (attr = v, != , ^=, ~=)"),
        (Action.LOAD_MORE, "Load next page"),
        (Action.REFRESH, "Reload from first page"),
        (Action.DELETE, "Delete selected item"),
        (Action.CANCEL, "Close popup, clear filter or go back"),
        (Action.BACK, "Back"),
    ] + _GLOBAL,
    ViewKind.ITEM_DETAIL: _NAVIGATION + [
        (Action.NEXT_PREVIEW, "Next preview mode"),
        (Action.PREV_PREVIEW, "Previous preview mode"),
        (Action.EDIT, "Edit item as raw JSON"),
        (Action.DELETE, "Delete item"),
        (Action.BACK, "Back"),
    ] + _DISPLAY + _GLOBAL,
    ViewKind.INSIGHT: _NAVIGATION + [
        (Action.REFRESH, "Reload table description"),
        (Action.BACK, "Back"),
    ] + _DISPLAY + _GLOBAL,
    ViewKind.HELP: [
        (Action.SELECT_DOWN, "Scroll down"),
        (Action.SELECT_UP, "Scroll up"),
        (Action.TOGGLE_HELP, "Close help"),
    ],
}

SHORT_HINTS: dict[ViewKind, list[tuple[Action, str]]] = {
    ViewKind.TABLE_LIST: [
        (Action.CONFIRM, "items"), (Action.SELECT_RIGHT, "describe"), (Action.NEXT_PANE, "pane"),
        (Action.FILTER_EDIT, "filter"), (Action.TOGGLE_HELP, "help"), (Action.QUIT, "quit"),
    ],
    ViewKind.TABLE_DETAIL: [
        (Action.NEXT_PREVIEW, "preview"), (Action.TOGGLE_WRAP, "wrap"), (Action.BACK, "back"),
        (Action.TOGGLE_HELP, "help"),
    ],
    ViewKind.ITEM_LIST: [
        (Action.CONFIRM, "open"), (Action.FILTER_EDIT, "filter"), (Action.LOAD_MORE, "more"),
        (Action.EXPAND, "expand"), (Action.INSIGHT, "insight"), (Action.TOGGLE_HELP, "help"),
    ],
    ViewKind.ITEM_DETAIL: [
        (Action.NEXT_PREVIEW, "preview"), (Action.EDIT, "edit"), (Action.DELETE, "delete"),
        (Action.BACK, "back"), (Action.TOGGLE_HELP, "help"),
    ],
    ViewKind.INSIGHT: [(Action.BACK, "back"), (Action.TOGGLE_HELP, "help")],
    ViewKind.HELP: [(Action.TOGGLE_HELP, "close")],
}


def truncate(text: str, width: int) -> str:
    """Single-line text cut to ``width`` with a trailing ellipsis."""
    text = text.replace("\n", " ")
    if len(text) <= width:
        return text
    if width <= len(ELLIPSIS):
        return text[:width]
    return text[: width - len(ELLIPSIS)] + ELLIPSIS


def format_bytes(size: int) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{int(value)} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"


def short_hints(kind: ViewKind) -> str:
    parts = []
    for action, label in SHORT_HINTS[kind]:
        key = keys_for(action)[0]
        parts.append(f"{KEY_LABELS.get(key, key)} {label}")
    return "  ".join(parts)


# -- text views -------------------------------------------------------------


def _schema_text(schema: KeySchema) -> str:
    text = f"{schema.hash_key} (HASH)"
    if schema.range_key:
        text += f", {schema.range_key} (RANGE)"
    return text


def description_lines(desc: TableDescription) -> list[str]:
    created = desc.created_at.strftime("%Y-%m-%d %H:%M:%S") if desc.created_at else "-"
    lines = [
        f"Table name:  {desc.name}",
        f"Status:      {desc.status}",
        f"Key schema:  {_schema_text(desc.key_schema)}",
        "Attributes:  " + ", ".join(f"{n} ({t})" for n, t in desc.attribute_definitions),
        f"Item count:  {desc.item_count}",
        f"Size:        {format_bytes(desc.size_bytes)}",
        f"ARN:         {desc.arn or '-'}",
        f"Created:     {created}",
    ]
    if desc.read_capacity is not None or desc.write_capacity is not None:
        lines.append(f"Throughput:  read {desc.read_capacity} / write {desc.write_capacity}")

    for title, indexes in (
        ("Local secondary indexes", desc.local_indexes),
        ("Global secondary indexes", desc.global_indexes),
    ):
        if not indexes:
            continue
        lines += ["", f"{title}:"]
        for ix in indexes:
            lines.append(f"  {ix.name}")
            lines.append(f"    Key schema:  {_schema_text(ix.key_schema)}")
            projection = ix.projection_type
            if ix.non_key_attributes:
                projection += f" ({', '.join(ix.non_key_attributes)})"
            lines.append(f"    Projection:  {projection}")
            lines.append(f"    Items:       {ix.item_count} ({format_bytes(ix.size_bytes)})")
    return lines


def _schema_json(schema: KeySchema) -> list[dict]:
    keys = [{"AttributeName": schema.hash_key, "KeyType": "HASH"}]
    if schema.range_key:
        keys.append({"AttributeName": schema.range_key, "KeyType": "RANGE"})
    return keys


def description_json(desc: TableDescription) -> str:
    doc: dict = {
        "TableName": desc.name,
        "TableStatus": desc.status,
        "KeySchema": _schema_json(desc.key_schema),
        "AttributeDefinitions": [
            {"AttributeName": n, "AttributeType": t} for n, t in desc.attribute_definitions
        ],
        "ItemCount": desc.item_count,
        "TableSizeBytes": desc.size_bytes,
        "TableArn": desc.arn,
    }
    if desc.created_at:
        doc["CreationDateTime"] = desc.created_at.isoformat()
    if desc.read_capacity is not None or desc.write_capacity is not None:
        doc["ProvisionedThroughput"] = {
            "ReadCapacityUnits": desc.read_capacity,
            "WriteCapacityUnits": desc.write_capacity,
        }
    for field_name, indexes in (
        ("LocalSecondaryIndexes", desc.local_indexes),
        ("GlobalSecondaryIndexes", desc.global_indexes),
    ):
        if indexes:
            doc[field_name] = [
                {
                    "IndexName": ix.name,
                    "KeySchema": _schema_json(ix.key_schema),
                    "Projection": {
                        "ProjectionType": ix.projection_type,
                        **({"NonKeyAttributes": list(ix.non_key_attributes)} if ix.non_key_attributes else {}),
                    },
                    "IndexSizeBytes": ix.size_bytes,
                    "ItemCount": ix.item_count,
                }
                for ix in indexes
            ]
    return json.dumps(doc, indent=2)


def _table_detail_lines(view: View) -> list[str]:
    desc = view.description
    if desc is None:
        return []
    if view.preview is PreviewMode.PLAIN_JSON:
        return description_json(desc).splitlines()
    return description_lines(desc)


def _item_detail_lines(view: View) -> list[str]:
    item = view.item
    if item is None:
        return []
    schema = view.key_schema
    if view.preview is PreviewMode.PLAIN_JSON:
        return item_plain_json(item, schema).splitlines()
    if view.preview is PreviewMode.RAW_JSON:
        return item_raw_json(item, schema).splitlines()
    names = list_attribute_keys([item], schema)
    width = max((len(n) for n in names), default=0)
    return [
        f"{name:<{width}}  {type_tag(item.attributes[name]):<4}  {to_simple_string(item.attributes[name])}"
        for name in names
    ]


def _insight_lines(view: View) -> list[str]:
    insight = build_insight(view.table or "", view.source_rows, view.description)
    lines = [f"Table: {insight.table_name}", f"Items loaded: {insight.total_items}"]
    desc = view.description
    if desc is not None:
        lines.append(f"Items in table (approx.): {desc.item_count}")
        lines.append(f"Table size: {format_bytes(desc.size_bytes)}")
    lines.append("")
    if not insight.distributions:
        lines.append("No items loaded")
        return lines
    width = max(len(d.name) for d in insight.distributions)
    lines.append(f"{'Attribute':<{width}}  Types")
    for dist in insight.distributions:
        counts = ", ".join(f"{tag} {count}" for tag, count in dist.counts)
        lines.append(f"{dist.name:<{width}}  {counts}")
    return lines


def _help_lines(view: View) -> list[str]:
    entries = HELP_ENTRIES.get(view.help_for or ViewKind.TABLE_LIST, [])
    hints = [(key_hint(action), text) for action, text in entries]
    width = max((len(h) for h, _ in hints), default=0)
    return [f"{hint:<{width}}  {text}" for hint, text in hints]


TEXT_LINES: dict[ViewKind, Callable[[View], list[str]]] = {
    ViewKind.TABLE_DETAIL: _table_detail_lines,
    ViewKind.ITEM_DETAIL: _item_detail_lines,
    ViewKind.INSIGHT: _insight_lines,
    ViewKind.HELP: _help_lines,
}


def text_lines(view: View) -> list[str]:
    """Lines of a scrolling text view; empty for list views."""
    builder = TEXT_LINES.get(view.kind)
    return builder(view) if builder else []


def display_lines(lines: list[str], view: View) -> list[str]:
    """Apply the view's horizontal offset and line numbers."""
    if view.h_scroll and not view.wrap:
        lines = [line[view.h_scroll:] for line in lines]
    if view.line_numbers:
        width = len(str(len(lines)))
        lines = [f"{n:>{width}} {line}" for n, line in enumerate(lines, 1)]
    return lines


def wrap_line(line: str, width: int) -> list[str]:
    if width <= 0 or len(line) <= width:
        return [line]
    return [line[i : i + width] for i in range(0, len(line), width)]


def expand_lines(view: View) -> list[str] | None:
    """Raw JSON of the selected cell, or None when no cell holds a value."""
    if view.kind is not ViewKind.ITEM_LIST or view.column is None:
        return None
    item = view.selected_row()
    columns = list_attribute_keys(view.rows, view.key_schema)
    if item is None or view.column >= len(columns):
        return None
    value = item.get(columns[view.column])
    if value is None:
        return None
    return attribute_raw_json(value).splitlines()


def popup_lines(view: View, config: Config) -> list[str] | None:
    """Expanded cell as drawn: wrapped or clipped to the popover width."""
    lines = expand_lines(view)
    if lines is None:
        return None
    width = config.ui.table.max_expand_width
    lines = display_lines(lines, view)
    if view.wrap:
        return [part for line in lines for part in wrap_line(line, width)]
    return [truncate(line, width) for line in lines]


# -- per-kind content --------------------------------------------------------


def _summary(view: View, noun: str) -> str:
    count = len(view.rows)
    text = f"{count} {noun}"
    if view.status is FetchStatus.LOADED and not view.cursor.is_exhausted:
        text += f" (more: {key_hint(Action.LOAD_MORE)})"
    if view.filter_text:
        text += f"  filter: {view.filter_text}"
    return text


def _pane_lines(view: View) -> tuple[str, list[str], int]:
    """Title and lines of the description pane beside the table list."""
    table = view.selected_row()
    if table is None:
        return "Description", [], 0
    pane = view.pane
    if pane is None or pane.table != table.name:
        return table.name, [f"Press {key_hint(Action.NEXT_PANE)} to describe {table.name}"], 0
    title = f"{table.name}  [{pane.preview.value}]"
    if pane.status is FetchStatus.LOADING:
        return title, ["Loading..."], 0
    if pane.status is FetchStatus.FAILED and pane.error is not None:
        return title, [f"{pane.error} (press {key_hint(Action.REFRESH)} in this pane to retry)"], 0
    return title, display_lines(text_lines(pane), pane), pane.scroll


def _table_list(view: View, config: Config) -> ViewContent:
    width = config.ui.table_list.list_width
    side_title, side, side_scroll = _pane_lines(view)
    pane = view.pane
    return ViewContent(
        kind=view.kind,
        title="Tables",
        columns=("Table",),
        rows=tuple((truncate(t.name, width),) for t in view.rows),
        selection=view.selection if view.rows else None,
        scroll=view.scroll,
        summary=_summary(view, "tables"),
        list_width=width,
        side=tuple(side),
        side_title=side_title,
        side_scroll=side_scroll,
        side_wrap=pane.wrap if pane is not None else False,
        side_focused=view.pane_focused,
    )


def _item_list(view: View, config: Config) -> ViewContent:
    width = config.ui.table.max_attribute_width
    columns = list_attribute_keys(view.rows, view.key_schema)
    rows = []
    for item in view.rows:
        cells = []
        for name in columns:
            value = item.get(name)
            cells.append(truncate(to_simple_string(value), width) if value is not None else UNDEFINED_CELL)
        rows.append(tuple(cells))

    popup = None
    if view.expanded:
        lines = popup_lines(view, config)
        if lines is not None:
            height = config.ui.table.max_expand_height
            popup = tuple(lines[view.expand_scroll : view.expand_scroll + height])

    return ViewContent(
        kind=view.kind,
        title=view.table or "",
        columns=tuple(truncate(c, width) for c in columns),
        rows=tuple(rows),
        selection=view.selection if view.rows else None,
        column=view.column,
        scroll=view.scroll,
        summary=_summary(view, "items"),
        popup=popup,
    )


def _text_view(title: Callable[[View], str]) -> Callable[[View, Config], ViewContent]:
    def render(view: View, config: Config) -> ViewContent:
        return ViewContent(
            kind=view.kind,
            title=title(view),
            lines=tuple(display_lines(text_lines(view), view)),
            scroll=view.scroll,
            wrap=view.wrap,
        )
    return render


def _item_detail_title(view: View) -> str:
    key = ""
    if view.item is not None and view.key_schema is not None:
        key = f" / {key_string(view.item, view.key_schema)}"
    return f"{view.table}{key}  [{view.preview.value}]"


RENDERERS: dict[ViewKind, Callable[[View, Config], ViewContent]] = {
    ViewKind.TABLE_LIST: _table_list,
    ViewKind.ITEM_LIST: _item_list,
    ViewKind.TABLE_DETAIL: _text_view(lambda v: f"Table: {v.table}  [{v.preview.value}]"),
    ViewKind.ITEM_DETAIL: _text_view(_item_detail_title),
    ViewKind.INSIGHT: _text_view(lambda v: f"Insight: {v.table}"),
    ViewKind.HELP: _text_view(lambda v: "Help"),
}


def render_view(view: View, config: Config) -> ViewContent:
    content = RENDERERS[view.kind](view, config)
    error = None
    if view.status is FetchStatus.FAILED and view.error is not None:
        error = f"{view.error} (press {key_hint(Action.REFRESH)} to retry)"
    notice = view.notice
    if view.confirm_delete:
        notice = "Delete this item? Enter to confirm, Esc to cancel"
    return replace(
        content,
        loading=view.status is FetchStatus.LOADING,
        error=error,
        notice=notice,
    )
