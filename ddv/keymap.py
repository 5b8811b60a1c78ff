"""Key bindings: terminal key names to navigation actions."""

from __future__ import annotations

from enum import Enum


class Action(Enum):
    SELECT_UP = "select_up"
    SELECT_DOWN = "select_down"
    SELECT_LEFT = "select_left"
    SELECT_RIGHT = "select_right"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    GO_TOP = "go_top"
    GO_BOTTOM = "go_bottom"
    CONFIRM = "confirm"
    BACK = "back"
    CANCEL = "cancel"
    TOGGLE_HELP = "toggle_help"
    QUIT = "quit"
    REFRESH = "refresh"
    FILTER_EDIT = "filter_edit"
    LOAD_MORE = "load_more"
    INSIGHT = "insight"
    EXPAND = "expand"
    NEXT_PREVIEW = "next_preview"
    PREV_PREVIEW = "prev_preview"
    DELETE = "delete"
    EDIT = "edit"
    FIRST_COLUMN = "first_column"
    LAST_COLUMN = "last_column"
    NEXT_PANE = "next_pane"
    TOGGLE_WRAP = "toggle_wrap"
    TOGGLE_NUMBER = "toggle_number"


# Printable keys are matched on the typed character, others on the key name.
KEYMAP: dict[str, Action] = {
    "ctrl+c": Action.QUIT,
    "q": Action.QUIT,
    "j": Action.SELECT_DOWN,
    "down": Action.SELECT_DOWN,
    "k": Action.SELECT_UP,
    "up": Action.SELECT_UP,
    "h": Action.SELECT_LEFT,
    "left": Action.SELECT_LEFT,
    "l": Action.SELECT_RIGHT,
    "right": Action.SELECT_RIGHT,
    "f": Action.PAGE_DOWN,
    "pagedown": Action.PAGE_DOWN,
    "b": Action.PAGE_UP,
    "pageup": Action.PAGE_UP,
    "g": Action.GO_TOP,
    "home": Action.GO_TOP,
    "G": Action.GO_BOTTOM,
    "end": Action.GO_BOTTOM,
    "enter": Action.CONFIRM,
    "backspace": Action.BACK,
    "ctrl+h": Action.BACK,
    "escape": Action.CANCEL,
    "?": Action.TOGGLE_HELP,
    "r": Action.REFRESH,
    "/": Action.FILTER_EDIT,
    "m": Action.LOAD_MORE,
    "i": Action.INSIGHT,
    "e": Action.EXPAND,
    "v": Action.NEXT_PREVIEW,
    "V": Action.PREV_PREVIEW,
    "D": Action.DELETE,
    "E": Action.EDIT,
    "^": Action.FIRST_COLUMN,
    "$": Action.LAST_COLUMN,
    "tab": Action.NEXT_PANE,
    "w": Action.TOGGLE_WRAP,
    "n": Action.TOGGLE_NUMBER,
}

KEY_LABELS = {
    "down": "↓",
    "up": "↑",
    "left": "←",
    "right": "→",
    "enter": "Enter",
    "backspace": "BS",
    "escape": "Esc",
    "pagedown": "PgDn",
    "pageup": "PgUp",
    "tab": "Tab",
}


def action_for(key: str) -> Action | None:
    return KEYMAP.get(key)


def keys_for(action: Action) -> list[str]:
    return [k for k, a in KEYMAP.items() if a is action]


def key_hint(action: Action) -> str:
    """Short label of the keys bound to an action, e.g. ``"j/↓"``."""
    return "/".join(KEY_LABELS.get(k, k) for k in keys_for(action))
