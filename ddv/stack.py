"""Stack-based view navigation."""

from __future__ import annotations

import logging
from typing import Generic, Iterator, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")


class ViewStack(Generic[V]):
    """Ordered navigation history; the last entry is the active view.

    - Push on open: navigating forward appends a view
    - Pop on back: removes the active view and resumes the previous one
    - The root view is never removed
    """

    def __init__(self, root: V):
        self._views: list[V] = [root]

    def __len__(self) -> int:
        return len(self._views)

    def __iter__(self) -> Iterator[V]:
        return iter(self._views)

    def push(self, view: V) -> None:
        self._views.append(view)

    def pop(self) -> V | None:
        """Remove the active view.

        Returns:
            The popped view, or None if only the root remains
        """
        if len(self._views) > 1:
            return self._views.pop()
        logger.debug("pop ignored at root view")
        return None

    def active(self) -> V:
        return self._views[-1]

    def root(self) -> V:
        return self._views[0]

    def depth(self) -> int:
        return len(self._views)
