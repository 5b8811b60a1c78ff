"""
Input handling and lifecycle hooks per view kind.

Handlers only touch the view they are given. Anything that reaches beyond
it (pushing or popping views, fetching, mutating the store, notifying) is
returned as a list of effects for the session to apply.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from ddv.attributes import list_attribute_keys
from ddv.config import Config
from ddv.fetch import START
from ddv.keymap import Action
from ddv.tasks import InputEvent, MutationOp
from ddv.views.model import (
    Effect,
    FetchMode,
    FetchStatus,
    Mutate,
    Notify,
    OpenEditor,
    OpenPane,
    Pop,
    Push,
    Quit,
    StartFetch,
    View,
    ViewKind,
)
from ddv.views.render import DETAIL_PREVIEWS, ITEM_PREVIEWS, expand_lines, popup_lines, text_lines


@dataclass(frozen=True)
class ViewContext:
    """What handlers may know about the surroundings of a view."""

    viewport_height: int = 20
    config: Config = field(default_factory=Config)


NAVIGATION = (
    Action.SELECT_UP,
    Action.SELECT_DOWN,
    Action.PAGE_UP,
    Action.PAGE_DOWN,
    Action.GO_TOP,
    Action.GO_BOTTOM,
)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def _target(action: Action, current: int, page: int, last: int) -> int:
    return {
        Action.SELECT_UP: current - 1,
        Action.SELECT_DOWN: current + 1,
        Action.PAGE_UP: current - page,
        Action.PAGE_DOWN: current + page,
        Action.GO_TOP: 0,
        Action.GO_BOTTOM: last,
    }[action]


def move_selection(view: View, action: Action, ctx: ViewContext) -> bool:
    """Move the row selection, keeping it inside the visible window."""
    if action not in NAVIGATION:
        return False
    if not view.rows:
        return True
    height = max(1, ctx.viewport_height)
    last = len(view.rows) - 1
    view.selection = _clamp(_target(action, view.selection, height, last), 0, last)
    if view.selection < view.scroll:
        view.scroll = view.selection
    elif view.selection >= view.scroll + height:
        view.scroll = view.selection - height + 1
    return True


def scroll_text(view: View, action: Action, ctx: ViewContext) -> bool:
    if action not in NAVIGATION:
        return False
    height = max(1, ctx.viewport_height)
    max_scroll = max(0, len(text_lines(view)) - height)
    view.scroll = _clamp(_target(action, view.scroll, height, max_scroll), 0, max_scroll)
    return True


def scroll_sideways(view: View, action: Action, lines: list[str]) -> bool:
    if action not in (Action.SELECT_LEFT, Action.SELECT_RIGHT):
        return False
    if view.wrap:
        return True
    widest = max((len(line) for line in lines), default=0)
    step = -1 if action is Action.SELECT_LEFT else 1
    view.h_scroll = _clamp(view.h_scroll + step, 0, max(0, widest - 1))
    return True


def toggle_display(view: View, action: Action) -> bool:
    """Wrap and line-number switches; wrapping drops the horizontal offset."""
    if action is Action.TOGGLE_WRAP:
        view.wrap = not view.wrap
        view.h_scroll = 0
        return True
    if action is Action.TOGGLE_NUMBER:
        view.line_numbers = not view.line_numbers
        return True
    return False


def _text_display(view: View, action: Action, ctx: ViewContext) -> bool:
    return (
        scroll_text(view, action, ctx)
        or scroll_sideways(view, action, text_lines(view))
        or toggle_display(view, action)
    )


def _scroll_popover(view: View, action: Action, ctx: ViewContext) -> None:
    lines = popup_lines(view, ctx.config) or []
    max_scroll = max(0, len(lines) - ctx.config.ui.table.max_expand_height)
    step = -1 if action is Action.SELECT_UP else 1
    view.expand_scroll = _clamp(view.expand_scroll + step, 0, max_scroll)


# -- filter and fetch helpers -------------------------------------------------


def begin_filter(view: View) -> None:
    view.filter_editing = True
    view.filter_draft = view.filter_text


def change_filter(view: View, text: str) -> list[Effect]:
    """Swap the query descriptor and restart from an empty state."""
    if view.descriptor is None or text == view.filter_text:
        return []
    view.descriptor = view.descriptor.with_filter(text)
    view.rows = []
    view.cursor = START
    view.selection = 0
    view.scroll = 0
    view.column = None
    view.expanded = False
    view.error = None
    view.notice = None
    view.status = FetchStatus.EMPTY
    return [StartFetch(view, FetchMode.RESTART)]


def _edit_filter(view: View, event: InputEvent) -> list[Effect]:
    if event.char and event.char.isprintable():
        view.filter_draft += event.char
    elif event.action is Action.BACK:
        view.filter_draft = view.filter_draft[:-1]
    elif event.action is Action.CONFIRM:
        view.filter_editing = False
        return change_filter(view, view.filter_draft.strip())
    elif event.action is Action.CANCEL:
        view.filter_editing = False
        view.filter_draft = ""
    elif event.action is Action.QUIT:
        return [Quit()]
    return []


def _load_more(view: View) -> list[Effect]:
    if view.status is FetchStatus.LOADING or view.cursor.is_exhausted:
        return []
    return [StartFetch(view, FetchMode.LOAD_MORE)]


def _fetch_action(view: View, action: Action) -> list[Effect]:
    if action is Action.REFRESH:
        return [StartFetch(view, FetchMode.REFRESH)]
    if action is Action.LOAD_MORE:
        return _load_more(view)
    return []


def _delete_target(view: View):
    if view.kind is ViewKind.ITEM_DETAIL:
        return view.item
    return view.selected_row()


def _confirm_delete(view: View, event: InputEvent) -> list[Effect]:
    # Any key other than confirm cancels.
    view.confirm_delete = False
    item = _delete_target(view)
    if event.action is Action.CONFIRM and item is not None:
        return [Mutate(view, MutationOp.DELETE, item)]
    return []


# -- per-kind input ----------------------------------------------------------


def _table_pane_input(view: View, action: Action, ctx: ViewContext) -> list[Effect]:
    pane = view.pane
    table = view.selected_row()
    # The list may have reloaded under the pane.
    stale = pane is None or table is None or pane.table != table.name
    if stale or action in (Action.NEXT_PANE, Action.BACK, Action.CANCEL):
        view.pane_focused = False
        return []
    if action is Action.CONFIRM:
        return [Push(View.item_list(pane.table))]
    return _table_detail_input(pane, action, ctx)


def _table_list_input(view: View, action: Action, ctx: ViewContext) -> list[Effect]:
    if view.pane_focused:
        return _table_pane_input(view, action, ctx)
    if move_selection(view, action, ctx):
        return []
    table = view.selected_row()
    if action is Action.CONFIRM:
        return [Push(View.item_list(table.name))] if table else []
    if action is Action.SELECT_RIGHT:
        return [Push(View.table_detail(table.name))] if table else []
    if action is Action.NEXT_PANE:
        if table is None:
            return []
        view.pane_focused = True
        return [OpenPane(view)]
    if action is Action.FILTER_EDIT:
        begin_filter(view)
        return []
    if action is Action.CANCEL:
        return change_filter(view, "")
    if action is Action.BACK:
        return [Pop()]
    return _fetch_action(view, action)


def _table_detail_input(view: View, action: Action, ctx: ViewContext) -> list[Effect]:
    if _text_display(view, action, ctx):
        return []
    if action in (Action.NEXT_PREVIEW, Action.PREV_PREVIEW):
        step = 1 if action is Action.NEXT_PREVIEW else -1
        view.preview = view.preview.cycle(step, DETAIL_PREVIEWS)
        view.scroll = 0
        view.h_scroll = 0
        return []
    if action in (Action.BACK, Action.CANCEL):
        return [Pop()]
    return _fetch_action(view, action)


def _popover_input(view: View, action: Action, ctx: ViewContext) -> bool:
    """Keys the open popover consumes; anything else closes it."""
    if action in (Action.SELECT_UP, Action.SELECT_DOWN):
        _scroll_popover(view, action, ctx)
        return True
    if scroll_sideways(view, action, expand_lines(view) or []):
        return True
    if toggle_display(view, action):
        view.expand_scroll = 0
        return True
    view.expanded = False
    view.h_scroll = 0
    return action in (Action.EXPAND, Action.CANCEL, Action.BACK)


def _item_list_input(view: View, action: Action, ctx: ViewContext) -> list[Effect]:
    if view.expanded and _popover_input(view, action, ctx):
        return []

    if move_selection(view, action, ctx):
        return []

    columns = list_attribute_keys(view.rows, view.key_schema)
    item = view.selected_row()
    if action is Action.SELECT_LEFT:
        view.column = None if not view.column else view.column - 1
    elif action is Action.SELECT_RIGHT:
        if columns:
            view.column = 0 if view.column is None else min(view.column + 1, len(columns) - 1)
    elif action is Action.FIRST_COLUMN:
        if columns:
            view.column = 0
    elif action is Action.LAST_COLUMN:
        if columns:
            view.column = len(columns) - 1
    elif action is Action.CONFIRM:
        if item is not None:
            return [Push(View.item_detail(view.table, item, view.description))]
    elif action is Action.EXPAND:
        if expand_lines(view) is None:
            return [Notify("info", "Select a cell with a value to expand (h/l)")]
        view.expanded = True
        view.expand_scroll = 0
        view.h_scroll = 0
    elif action is Action.INSIGHT:
        return [Push(View.insight(view.table, view.rows, view.description))]
    elif action is Action.DELETE:
        view.confirm_delete = item is not None and view.key_schema is not None
    elif action is Action.FILTER_EDIT:
        begin_filter(view)
    elif action is Action.CANCEL:
        return change_filter(view, "") if view.filter_text else [Pop()]
    elif action is Action.BACK:
        return [Pop()]
    else:
        return _fetch_action(view, action)
    return []


def _item_detail_input(view: View, action: Action, ctx: ViewContext) -> list[Effect]:
    if _text_display(view, action, ctx):
        return []
    if action in (Action.NEXT_PREVIEW, Action.PREV_PREVIEW):
        step = 1 if action is Action.NEXT_PREVIEW else -1
        view.preview = view.preview.cycle(step, ITEM_PREVIEWS)
        view.scroll = 0
        view.h_scroll = 0
    elif action is Action.EDIT:
        return [OpenEditor(view)]
    elif action is Action.DELETE:
        view.confirm_delete = view.item is not None and view.key_schema is not None
    elif action in (Action.BACK, Action.CANCEL):
        return [Pop()]
    return []


def _insight_input(view: View, action: Action, ctx: ViewContext) -> list[Effect]:
    if _text_display(view, action, ctx):
        return []
    if action in (Action.BACK, Action.CANCEL):
        return [Pop()]
    if action is Action.REFRESH:
        return [StartFetch(view, FetchMode.REFRESH)]
    return []


def _help_input(view: View, action: Action, ctx: ViewContext) -> list[Effect]:
    if scroll_text(view, action, ctx):
        return []
    if action in (Action.BACK, Action.CANCEL):
        return [Pop()]
    return []


InputHandler = Callable[[View, Action, ViewContext], list[Effect]]

INPUT_HANDLERS: dict[ViewKind, InputHandler] = {
    ViewKind.TABLE_LIST: _table_list_input,
    ViewKind.TABLE_DETAIL: _table_detail_input,
    ViewKind.ITEM_LIST: _item_list_input,
    ViewKind.ITEM_DETAIL: _item_detail_input,
    ViewKind.INSIGHT: _insight_input,
    ViewKind.HELP: _help_input,
}


def handle_input(view: View, event: InputEvent, ctx: ViewContext | None = None) -> list[Effect]:
    """Apply one input event to the active view.

    Returns:
        Effects for the session: push/pop, fetch, mutate, notify, quit
    """
    ctx = ctx or ViewContext()
    if view.filter_editing:
        return _edit_filter(view, event)
    if view.confirm_delete:
        return _confirm_delete(view, event)

    action = event.action
    if action is None:
        return []
    if action is Action.QUIT:
        return [Quit()]
    if action is Action.TOGGLE_HELP:
        if view.kind is ViewKind.HELP:
            return [Pop()]
        return [Push(View.help(view.kind))]
    return INPUT_HANDLERS[view.kind](view, action, ctx)


# -- lifecycle ---------------------------------------------------------------


def _fetch_on_enter(view: View) -> list[Effect]:
    return [StartFetch(view, FetchMode.ENTER)]


def _insight_on_enter(view: View) -> list[Effect]:
    # The description usually comes along from the item list.
    if view.description is not None:
        view.status = FetchStatus.LOADED
        return []
    return _fetch_on_enter(view)


def _static_on_enter(view: View) -> list[Effect]:
    view.status = FetchStatus.LOADED
    return []


ON_ENTER: dict[ViewKind, Callable[[View], list[Effect]]] = {
    ViewKind.TABLE_LIST: _fetch_on_enter,
    ViewKind.TABLE_DETAIL: _fetch_on_enter,
    ViewKind.ITEM_LIST: _fetch_on_enter,
    ViewKind.ITEM_DETAIL: _static_on_enter,
    ViewKind.INSIGHT: _insight_on_enter,
    ViewKind.HELP: _static_on_enter,
}


def on_enter(view: View) -> list[Effect]:
    """Effects for a freshly pushed view."""
    return ON_ENTER[view.kind](view)


def on_resume(view: View) -> list[Effect]:
    """A resumed view re-renders from its own rows; it never refetches."""
    view.expanded = False
    view.confirm_delete = False
    return []
