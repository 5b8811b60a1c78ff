"""
Units of asynchronous work and the events they report back.

A FetchTask is tagged with the id and generation of the view that started
it. Superseding a fetch only bumps the view's generation; the old task
still runs to completion and its result is dropped on arrival.
"""

from __future__ import annotations

import itertools
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from ddv.cache import CacheKey
from ddv.fetch import (
    Cursor,
    MutationResult,
    PageFetcher,
    PageResult,
    QueryDescriptor,
)
from ddv.keymap import Action
from ddv.providers import Item

_task_ids = itertools.count(1)


@dataclass(frozen=True, eq=False)
class FetchTask:
    """One outstanding page request on behalf of a view."""

    view_id: int
    generation: int
    key: CacheKey
    descriptor: QueryDescriptor
    cursor: Cursor
    page_size: int | None = None
    task_id: int = field(default_factory=lambda: next(_task_ids))

    def run(self, fetcher: PageFetcher) -> FetchCompleted:
        result = fetcher.fetch(self.descriptor, self.cursor, self.page_size)
        return FetchCompleted(self, result)


class MutationOp(Enum):
    PUT = "put"
    DELETE = "delete"


@dataclass(frozen=True, eq=False)
class MutationTask:
    """A single put or delete request. Never retried."""

    view_id: int
    op: MutationOp
    table: str
    item: Item
    key: dict[str, Any] = field(default_factory=dict)
    task_id: int = field(default_factory=lambda: next(_task_ids))

    def run(self, fetcher: PageFetcher) -> MutationCompleted:
        if self.op is MutationOp.PUT:
            result = fetcher.put_item(self.table, self.item)
        else:
            result = fetcher.delete_item(self.table, self.key)
        return MutationCompleted(self, result)


@dataclass(frozen=True)
class FetchCompleted:
    task: FetchTask
    result: PageResult


@dataclass(frozen=True)
class MutationCompleted:
    task: MutationTask
    result: MutationResult


@dataclass(frozen=True)
class InputEvent:
    """A key mapped to an action; ``char`` carries typed text while editing."""

    action: Action | None
    char: str | None = None


@dataclass(frozen=True)
class Tick:
    """Periodic redraw for the loading spinner."""


Event = Union[InputEvent, FetchCompleted, MutationCompleted, Tick]
Task = Union[FetchTask, MutationTask]


class EventCategory(Enum):
    INPUT = "input"
    COMPLETION = "completion"
    TICK = "tick"


def category_of(event: Event) -> EventCategory:
    if isinstance(event, InputEvent):
        return EventCategory.INPUT
    if isinstance(event, Tick):
        return EventCategory.TICK
    return EventCategory.COMPLETION


class EventQueue:
    """Per-category FIFO queues drained one category at a time, round-robin."""

    ORDER = (EventCategory.INPUT, EventCategory.COMPLETION, EventCategory.TICK)

    def __init__(self) -> None:
        self._queues: dict[EventCategory, deque[Event]] = {
            c: deque() for c in self.ORDER
        }
        self._next = 0

    def __len__(self) -> int:
        return sum(len(q) for q in self._queues.values())

    def put(self, event: Event) -> None:
        self._queues[category_of(event)].append(event)

    def drain_next(self) -> list[Event]:
        """Remove and return all pending events of the next non-empty category."""
        for offset in range(len(self.ORDER)):
            index = (self._next + offset) % len(self.ORDER)
            queue = self._queues[self.ORDER[index]]
            if queue:
                self._next = (index + 1) % len(self.ORDER)
                events = list(queue)
                queue.clear()
                return events
        return []
