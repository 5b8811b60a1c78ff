"""Unit tests for tasks and the event queue."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))
from ddv.cache import CacheKey
from ddv.fetch import START, Applied, Page, PageFetcher, QueryDescriptor, QueryKind
from ddv.keymap import Action
from ddv.tasks import (
    EventCategory,
    EventQueue,
    FetchCompleted,
    FetchTask,
    InputEvent,
    MutationCompleted,
    MutationOp,
    MutationTask,
    Tick,
    category_of,
)

from fakes import FakeStore, user


def fetch_task(generation: int = 1) -> FetchTask:
    descriptor = QueryDescriptor(QueryKind.ITEM_LIST, "Users")
    return FetchTask(1, generation, CacheKey.for_descriptor(descriptor), descriptor, START, 2)


class TestTasks:
    """Tests for running tasks."""

    def test_fetch_task_reports_its_page(self) -> None:
        store = FakeStore({"Users": [user(i) for i in range(3)]})
        task = fetch_task()

        event = task.run(PageFetcher(store))

        assert isinstance(event, FetchCompleted)
        assert event.task is task
        assert isinstance(event.result, Page)
        assert len(event.result.rows) == 2

    def test_delete_task_sends_key(self) -> None:
        store = FakeStore({"Users": [user(0), user(1)]})
        item = user(0)
        task = MutationTask(1, MutationOp.DELETE, "Users", item, key={"id": {"S": "user-000"}})

        event = task.run(PageFetcher(store))

        assert isinstance(event, MutationCompleted)
        assert isinstance(event.result, Applied)
        assert store.tables["Users"] == [user(1)]

    def test_task_ids_are_unique(self) -> None:
        assert fetch_task().task_id != fetch_task().task_id


class TestEventQueue:
    """Tests for round-robin draining."""

    def test_categories(self) -> None:
        assert category_of(InputEvent(Action.QUIT)) is EventCategory.INPUT
        assert category_of(Tick()) is EventCategory.TICK
        assert category_of(FetchCompleted(fetch_task(), Page((), START))) is EventCategory.COMPLETION

    def test_drains_whole_category_in_order(self) -> None:
        queue = EventQueue()
        first, second = InputEvent(Action.SELECT_DOWN), InputEvent(Action.SELECT_UP)
        queue.put(first)
        queue.put(second)

        assert queue.drain_next() == [first, second]
        assert len(queue) == 0
        assert queue.drain_next() == []

    def test_round_robin_does_not_starve_categories(self) -> None:
        queue = EventQueue()
        completion = FetchCompleted(fetch_task(), Page((), START))
        tick = Tick()
        queue.put(InputEvent(Action.SELECT_DOWN))
        queue.put(completion)
        queue.put(tick)

        queue.drain_next()
        queue.put(InputEvent(Action.SELECT_UP))

        assert queue.drain_next() == [completion]
        assert queue.drain_next() == [tick]
        assert queue.drain_next() == [InputEvent(Action.SELECT_UP)]
