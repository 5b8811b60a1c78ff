"""
ddv Textual application.

The app is a thin shell around Session: keys, ticks and finished tasks are
posted to the session's event queue, and the queue is pumped one event
category at a time with at most one redraw per pump.
"""

from __future__ import annotations

from functools import partial

from textual import events
from textual.app import App
from textual.binding import Binding

from ddv.attributes import item_raw_json, key_string
from ddv.config import Config
from ddv.fetch import PageFetcher
from ddv.keymap import action_for
from ddv.providers import DataStore, Item
from ddv.session import Session
from ddv.tasks import Event, InputEvent, Task, Tick
from ddv.views.model import View
from ddv.views.screens import BrowserScreen, ItemEditScreen

# Spinner redraw interval in seconds
TICK_INTERVAL = 0.1

# Summary line and table header above the rows
BODY_CHROME_LINES = 2


class DdvApp(App):
    """Terminal viewer for DynamoDB tables."""

    TITLE = "ddv"
    SUB_TITLE = "DynamoDB Viewer"

    CSS = """
    Screen {
        background: $surface;
    }
    """

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit", show=False, priority=True),
    ]

    def __init__(self, store: DataStore, config: Config | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.config = config or Config()
        self.session = Session(PageFetcher(store), self.config, spawn=self._spawn)
        self._browser = BrowserScreen()

    def on_mount(self) -> None:
        """Called when app is mounted."""
        self.set_interval(TICK_INTERVAL, self._tick)
        self.session.start()
        self.push_screen(self._browser)

    # -- event pump -----------------------------------------------------------

    def post_event(self, event: Event) -> None:
        self.session.post(event)
        self._pump()

    def _pump(self) -> None:
        if self.session.step():
            self.redraw()
        if self.session.quit_requested:
            # Pending fetches are abandoned, never awaited.
            self.exit()
            return
        if self.session.editor_request is not None:
            view = self.session.editor_request
            self.session.editor_request = None
            self._open_editor(view)
        if len(self.session.queue):
            self.call_later(self._pump)

    def _tick(self) -> None:
        self.post_event(Tick())

    def handle_key(self, event: events.Key) -> None:
        char = event.character if event.is_printable else None
        action = action_for(char) if char else None
        if action is None:
            action = action_for(event.key)
        self.post_event(InputEvent(action, char))

    # -- tasks ----------------------------------------------------------------

    def _spawn(self, task: Task) -> None:
        self.run_worker(
            partial(self._run_task, task),
            thread=True,
            group="tasks",
            exit_on_error=False,
        )

    def _run_task(self, task: Task) -> None:
        event = task.run(self.session.fetcher)
        self.call_from_thread(self.post_event, event)

    # -- drawing --------------------------------------------------------------

    def set_viewport(self, height: int) -> None:
        self.session.viewport_height = max(1, height - BODY_CHROME_LINES)
        self.redraw()

    def redraw(self) -> None:
        if not self._browser.ready:
            return
        content = self.session.content()
        self.sub_title = content.title
        notification = self.session.notification
        self._browser.show(
            content,
            self.session.viewport_height,
            self.session.status_line(),
            notification.level if notification else None,
        )

    # -- item editor ----------------------------------------------------------

    def _open_editor(self, view: View) -> None:
        if view.item is None:
            return
        schema = view.key_schema
        title = f"Edit {view.table}"
        if schema is not None:
            title += f" / {key_string(view.item, schema)}"

        def saved(item: Item | None) -> None:
            if item is not None:
                self.session.put_item(view, item)
            self.redraw()

        self.push_screen(ItemEditScreen(item_raw_json(view.item, schema), title), saved)


def run(store: DataStore, config: Config | None = None) -> None:
    """Run the TUI application."""
    app = DdvApp(store, config)
    app.run()
