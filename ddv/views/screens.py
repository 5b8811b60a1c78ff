"""Textual screens: the browser and the modal item editor."""

from __future__ import annotations

from textual import events
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen, Screen
from textual.widgets import Header, Label, TextArea

from ddv.attributes import item_from_raw_json
from ddv.providers import Item
from ddv.views.model import ViewContent
from ddv.views.widgets import ExpandPopup, StatusLine, ViewBody


class BrowserScreen(Screen):
    """Draws whichever view is on top of the session's stack.

    Keys are not handled here; they are forwarded to the app, which turns
    them into input events for the session.
    """

    DEFAULT_CSS = """
    BrowserScreen #main {
        height: 1fr;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.ready = False

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main"):
            yield ViewBody(id="body")
            yield ExpandPopup(id="popup")
        yield StatusLine(id="status")

    def on_mount(self) -> None:
        self.ready = True
        self.app.redraw()

    def on_key(self, event: events.Key) -> None:
        event.stop()
        event.prevent_default()
        self.app.handle_key(event)

    def show(self, content: ViewContent, height: int, status: str, level: str | None) -> None:
        self.query_one(ViewBody).show(content, height)
        self.query_one(ExpandPopup).show(content.popup)
        self.query_one(StatusLine).show(status, level)


class ItemEditScreen(ModalScreen[Item | None]):
    """Edit an item as raw typed JSON; dismisses with the parsed item."""

    DEFAULT_CSS = """
    ItemEditScreen {
        align: center middle;
    }

    ItemEditScreen #dialog {
        width: 80%;
        height: 80%;
        border: thick $primary;
        background: $surface;
        padding: 0 1;
    }

    ItemEditScreen #editor {
        height: 1fr;
    }

    ItemEditScreen .title {
        text-style: bold;
    }

    ItemEditScreen #error {
        color: $error;
    }
    """

    BINDINGS = [
        Binding("ctrl+s", "save", "Save", show=True),
        Binding("escape", "cancel", "Cancel", show=True),
    ]

    def __init__(self, text: str, title: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self._text = text
        self._title = title

    def compose(self) -> ComposeResult:
        with Vertical(id="dialog"):
            yield Label(self._title, classes="title")
            yield TextArea(self._text, id="editor")
            yield Label("", id="error")
            yield Label("ctrl+s save  esc cancel")

    def on_mount(self) -> None:
        self.query_one(TextArea).focus()

    def action_save(self) -> None:
        text = self.query_one(TextArea).text
        try:
            item = item_from_raw_json(text)
        except (ValueError, TypeError) as e:
            self.query_one("#error", Label).update(f"Invalid item JSON: {e}")
            return
        self.dismiss(item)

    def action_cancel(self) -> None:
        self.dismiss(None)
