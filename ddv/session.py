"""
The application driver, independent of any terminal toolkit.

A Session owns the view stack, the result cache, the in-flight tasks and
the configuration. Input, task completions and ticks arrive through one
EventQueue; each ``step()`` drains a single event category and reports
whether the active view needs a redraw.

Tasks are handed to a ``spawn`` callable. The Textual app runs them on
worker threads; tests collect them and deliver completions by hand.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Callable

from ddv.attributes import key_string
from ddv.cache import CacheEntry, CacheKey, ResultCache
from ddv.config import Config
from ddv.errors import NotFound, StaleCursor
from ddv.fetch import START, Failed, Page, PageFetcher, QueryKind
from ddv.keymap import Action
from ddv.providers import Item
from ddv.stack import ViewStack
from ddv.tasks import (
    Event,
    EventQueue,
    FetchCompleted,
    FetchTask,
    InputEvent,
    MutationCompleted,
    MutationOp,
    MutationTask,
    Task,
    Tick,
)
from ddv.views.handlers import ViewContext, handle_input, on_enter, on_resume
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
    ViewContent,
)
from ddv.views.render import SPINNER, render_view, short_hints

logger = logging.getLogger(__name__)

SUCCESS = "success"
INFO = "info"
WARNING = "warning"
ERROR = "error"


@dataclass(frozen=True)
class Notification:
    level: str
    message: str


class Session:
    """Single-threaded driver for the view stack and its fetches."""

    def __init__(
        self,
        fetcher: PageFetcher,
        config: Config | None = None,
        spawn: Callable[[Task], None] | None = None,
        cache: ResultCache | None = None,
    ) -> None:
        self.config = config or Config()
        self.fetcher = fetcher
        self.cache = cache if cache is not None else ResultCache(self.config.cache_max_entries)
        self.queue = EventQueue()
        self.viewport_height = 20
        self.notification: Notification | None = None
        self.editor_request: View | None = None
        self.quit_requested = False
        self.spinner_frame = 0
        self._spawn = spawn or (lambda task: None)
        self._view_ids = itertools.count(1)
        self._inflight: dict[CacheKey, FetchTask] = {}
        self._mutations: dict[int, MutationTask] = {}
        self.stack: ViewStack[View] = ViewStack(self._register(View.table_list()))

    # -- lifecycle ------------------------------------------------------------

    def start(self) -> None:
        """Enter the root view (issues the initial table list fetch)."""
        self.apply(on_enter(self.stack.root()))

    def active(self) -> View:
        return self.stack.active()

    def views(self) -> list[View]:
        """Stacked views plus the description pane of any table list."""
        views = []
        for view in self.stack:
            views.append(view)
            if view.pane is not None:
                views.append(view.pane)
        return views

    def is_visible(self, view: View) -> bool:
        active = self.active()
        return view is active or view is active.pane

    def find_view(self, view_id: int) -> View | None:
        for view in self.views():
            if view.view_id == view_id:
                return view
        return None

    def _register(self, view: View) -> View:
        view.view_id = next(self._view_ids)
        return view

    def push(self, view: View) -> None:
        self.stack.push(self._register(view))
        logger.debug("push %s (depth %d)", view.kind.value, self.stack.depth())
        self.apply(on_enter(view))

    def pop(self) -> View | None:
        popped = self.stack.pop()
        if popped is None:
            self.notify(INFO, "Already at the table list")
            return None
        logger.debug("pop %s (depth %d)", popped.kind.value, self.stack.depth())
        # In-flight tasks of the popped view keep running; see _complete_fetch.
        self.apply(on_resume(self.stack.active()))
        return popped

    def notify(self, level: str, message: str) -> None:
        self.notification = Notification(level, message)

    # -- events ---------------------------------------------------------------

    def post(self, event: Event) -> None:
        self.queue.put(event)

    def step(self) -> bool:
        """Handle every pending event of one category.

        Returns:
            True if the active view should be redrawn
        """
        events = self.queue.drain_next()
        dirty = False
        for event in events:
            if isinstance(event, InputEvent):
                self._handle_input(event)
                dirty = True
            elif isinstance(event, FetchCompleted):
                dirty = self._complete_fetch(event) or dirty
            elif isinstance(event, MutationCompleted):
                self._complete_mutation(event)
                dirty = True
            elif isinstance(event, Tick):
                self.spinner_frame += 1
                active = self.active()
                loading = [v for v in (active, active.pane) if v is not None and v.status is FetchStatus.LOADING]
                dirty = dirty or bool(loading)
        return dirty

    def run_pending(self) -> bool:
        dirty = False
        while len(self.queue):
            dirty = self.step() or dirty
        return dirty

    def _handle_input(self, event: InputEvent) -> None:
        if self.notification is not None:
            level = self.notification.level
            self.notification = None
            # An error stays until dismissed; the dismissing key does nothing else.
            if level == ERROR and event.action is not Action.QUIT:
                return
        view = self.active()
        ctx = ViewContext(self.viewport_height, self.config)
        self.apply(handle_input(view, event, ctx))

    # -- effects --------------------------------------------------------------

    def apply(self, effects: list[Effect]) -> None:
        for effect in effects:
            if isinstance(effect, Push):
                self.push(effect.view)
            elif isinstance(effect, Pop):
                self.pop()
            elif isinstance(effect, StartFetch):
                self.start_fetch(effect.view, effect.mode)
            elif isinstance(effect, Mutate):
                self.start_mutation(effect.view, effect.op, effect.item)
            elif isinstance(effect, OpenPane):
                self.open_pane(effect.view)
            elif isinstance(effect, OpenEditor):
                self.editor_request = effect.view
            elif isinstance(effect, Notify):
                self.notify(effect.level, effect.message)
            elif isinstance(effect, Quit):
                self.quit_requested = True

    # -- fetching -------------------------------------------------------------

    def open_pane(self, view: View) -> None:
        """Describe the selected table beside the list, once per selection."""
        table = view.selected_row()
        if table is None:
            view.pane_focused = False
            return
        if view.pane is not None and view.pane.table == table.name:
            return
        view.pane = self._register(View.table_detail(table.name))
        self.start_fetch(view.pane, FetchMode.ENTER)

    def start_fetch(self, view: View, mode: FetchMode = FetchMode.ENTER) -> None:
        key = view.key
        if key is None:
            return

        if mode is FetchMode.ENTER:
            entry = self.cache.get(key)
            if entry is not None and entry.is_usable:
                logger.debug("cache hit %s:%s", key.kind.value, key.table)
                self._load_entry(view, entry)
                return
            self._spawn_fetch(view, entry.cursor if entry else START)
        elif mode is FetchMode.LOAD_MORE:
            if view.cursor.is_exhausted or view.status is FetchStatus.LOADING:
                return
            self._spawn_fetch(view, view.cursor)
        else:
            # Refresh or a new query descriptor: drop what is cached and restart.
            self.cache.invalidate(key)
            view.rows = []
            view.cursor = START
            view.selection = 0
            view.scroll = 0
            view.status = FetchStatus.EMPTY
            self._spawn_fetch(view, START)

    def _spawn_fetch(self, view: View, cursor) -> None:
        previous = view.in_flight
        if previous is not None and self._inflight.get(previous.key) is previous:
            del self._inflight[previous.key]

        view.generation += 1
        task = FetchTask(
            view_id=view.view_id,
            generation=view.generation,
            key=view.key,
            descriptor=view.descriptor,
            cursor=cursor,
            page_size=self.config.page_size,
        )
        self._inflight[task.key] = task
        view.in_flight = task
        view.status = FetchStatus.LOADING
        view.error = None
        view.notice = None
        logger.debug(
            "start fetch %s:%s gen=%d cursor=%s",
            task.key.kind.value, task.key.table, task.generation, cursor,
        )
        self._spawn(task)

    def _load_entry(self, view: View, entry: CacheEntry) -> None:
        view.rows = list(entry.rows)
        view.cursor = entry.cursor
        if entry.meta is not None:
            view.meta = entry.meta
        view.status = FetchStatus.LOADED
        view.in_flight = None
        view.error = None
        if view.rows:
            view.selection = min(view.selection, len(view.rows) - 1)
        else:
            view.selection = 0

    def _complete_fetch(self, event: FetchCompleted) -> bool:
        task = event.task
        owner = self.find_view(task.view_id)
        if owner is not None and owner.generation != task.generation:
            logger.debug("discard stale completion gen=%d (view at %d)", task.generation, owner.generation)
            return False
        if self._inflight.get(task.key) is not task:
            logger.debug("discard superseded completion for %s:%s", task.key.kind.value, task.key.table)
            return False
        del self._inflight[task.key]

        # The owner may have been popped; the result still fills the cache.
        result = event.result
        if isinstance(result, Failed):
            return self._fail(task, owner, result)

        if isinstance(result, Page):
            try:
                entry = self.cache.append(task.key, task.cursor, result.rows, result.next_cursor, result.meta)
            except StaleCursor as e:
                logger.warning("%s; restarting from start", e)
                self.cache.invalidate(task.key)
                if owner is not None:
                    self.start_fetch(owner, FetchMode.REFRESH)
                return owner is not None and self.is_visible(owner)
        else:
            entry = self.cache.get_or_start(task.key)

        return self._sync_views(task.key, entry)

    def _sync_views(self, key: CacheKey, entry: CacheEntry) -> bool:
        """Show the entry in every stacked view reading this key."""
        dirty = False
        for view in self.views():
            if view.key == key:
                self._load_entry(view, entry)
                dirty = dirty or self.is_visible(view)
        return dirty

    def _fail(self, task: FetchTask, owner: View | None, result: Failed) -> bool:
        error = result.error
        if owner is None:
            logger.info("fetch for popped view failed: %s", error)
            return False
        owner.in_flight = None
        if isinstance(error, NotFound):
            owner.notice = error.message
            owner.status = FetchStatus.LOADED if owner.rows else FetchStatus.FAILED
            owner.error = None if owner.rows else error
        else:
            owner.status = FetchStatus.FAILED
            owner.error = error
            if self.is_visible(owner):
                self.notify(ERROR, str(error))
        return self.is_visible(owner)

    # -- mutations ------------------------------------------------------------

    def start_mutation(self, view: View, op: MutationOp, item: Item) -> None:
        schema = view.key_schema
        if view.table is None or schema is None:
            self.notify(WARNING, "Table key schema not loaded yet")
            return
        task = MutationTask(
            view_id=view.view_id,
            op=op,
            table=view.table,
            item=item,
            key=item.key(schema),
        )
        self._mutations[task.task_id] = task
        verb = "Deleting" if op is MutationOp.DELETE else "Saving"
        self.notify(INFO, f"{verb} {key_string(item, schema)}...")
        self._spawn(task)

    def put_item(self, view: View, item: Item) -> None:
        self.start_mutation(view, MutationOp.PUT, item)

    def pending_mutations(self) -> list[MutationTask]:
        return list(self._mutations.values())

    def _complete_mutation(self, event: MutationCompleted) -> None:
        task = event.task
        self._mutations.pop(task.task_id, None)
        result = event.result
        if isinstance(result, Failed):
            # Cached rows stay as they are so the visible data is not lost.
            self.notify(ERROR, str(result.error))
            return

        # Every cached item query of the table may be affected; views reload
        # on their next enter or an explicit refresh.
        self.cache.invalidate_table(task.table, QueryKind.ITEM_LIST)
        verb = "Deleted" if task.op is MutationOp.DELETE else "Saved"
        self.notify(SUCCESS, f"{verb} item. Press r in the item list to refresh")
        owner = self.find_view(task.view_id)
        if owner is not None and task.op is MutationOp.PUT and owner.item is not None:
            owner.item = task.item

    # -- rendering ------------------------------------------------------------

    def content(self) -> ViewContent:
        return render_view(self.active(), self.config)

    def status_line(self) -> str:
        view = self.active()
        if view.filter_editing:
            return f"/{view.filter_draft}"
        if self.notification is not None:
            return self.notification.message
        hints = short_hints(view.kind)
        if view.status is FetchStatus.LOADING:
            return f"{SPINNER[self.spinner_frame % len(SPINNER)]} Loading...  {hints}"
        return hints
