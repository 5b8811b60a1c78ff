"""Headless tests of the Textual app driving a FakeStore."""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))
from ddv.app import DdvApp
from ddv.views.model import FetchStatus, ViewKind
from ddv.views.screens import BrowserScreen, ItemEditScreen

from fakes import FakeStore, user


async def wait_for(pilot, predicate, timeout: float = 5.0) -> None:
    for _ in range(int(timeout / 0.05)):
        if predicate():
            return
        await pilot.pause(0.05)
    raise AssertionError("condition not reached before timeout")


def active_loaded(app: DdvApp, kind: ViewKind):
    def check() -> bool:
        view = app.session.active()
        return view.kind is kind and view.status is FetchStatus.LOADED
    return check


def test_browse_and_quit() -> None:
    store = FakeStore({"Users": [user(i) for i in range(3)]})
    app = DdvApp(store)

    async def scenario() -> None:
        async with app.run_test() as pilot:
            await wait_for(pilot, active_loaded(app, ViewKind.TABLE_LIST))
            assert isinstance(app.screen, BrowserScreen)

            await pilot.press("enter")
            await wait_for(pilot, active_loaded(app, ViewKind.ITEM_LIST))
            assert len(app.session.active().rows) == 3

            await pilot.press("backspace")
            await wait_for(pilot, lambda: app.session.active().kind is ViewKind.TABLE_LIST)

            await pilot.press("q")
            await pilot.pause()

    asyncio.run(scenario())
    assert app.session.quit_requested


def test_edit_item_writes_once() -> None:
    store = FakeStore({"Users": [user(0)]})
    app = DdvApp(store)

    async def scenario() -> None:
        async with app.run_test() as pilot:
            await wait_for(pilot, active_loaded(app, ViewKind.TABLE_LIST))
            await pilot.press("enter")
            await wait_for(pilot, active_loaded(app, ViewKind.ITEM_LIST))
            await pilot.press("enter")
            await wait_for(pilot, lambda: app.session.active().kind is ViewKind.ITEM_DETAIL)

            await pilot.press("E")
            await wait_for(pilot, lambda: isinstance(app.screen, ItemEditScreen))
            await pilot.press("ctrl+s")
            await wait_for(pilot, lambda: any(c[0] == "put_item" for c in store.calls))
            await wait_for(pilot, lambda: not app.session.pending_mutations())

            assert isinstance(app.screen, BrowserScreen)
            assert app.session.notification.level == "success"

    asyncio.run(scenario())
    assert [c[0] for c in store.calls].count("put_item") == 1


def test_tab_describes_table_beside_list() -> None:
    store = FakeStore({"Users": [user(0)]})
    app = DdvApp(store)

    async def scenario() -> None:
        async with app.run_test() as pilot:
            await wait_for(pilot, active_loaded(app, ViewKind.TABLE_LIST))
            root = app.session.active()

            await pilot.press("tab")
            await wait_for(pilot, lambda: root.pane is not None and root.pane.status is FetchStatus.LOADED)

            assert root.pane_focused
            assert app.session.content().side[0] == "Table name:  Users"

    asyncio.run(scenario())
