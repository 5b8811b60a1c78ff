"""
Error kinds surfaced by the viewer.

Every failure coming back from the data store is converted into one of
these before it reaches a view, so the UI only ever deals with a message
and an optional underlying cause.
"""

from __future__ import annotations


class DdvError(Exception):
    """Base error carrying a user-facing message and the underlying cause."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class TransportFailure(DdvError):
    """Network, auth or service error from the backing store."""


class NotFound(DdvError):
    """A table or item disappeared between listing and opening it."""


class MutationRejected(DdvError):
    """A put or delete was refused by the store."""


class StaleCursor(DdvError):
    """A page was fetched from a cursor that is no longer current."""


class ConfigError(DdvError):
    """The configuration file is unreadable or invalid."""
