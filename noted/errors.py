from __future__ import annotations


class NotedError(Exception):
    """Base class for errors raised by noted."""


class ValidationError(NotedError, ValueError):
    pass


class NotFoundError(NotedError, LookupError):
    pass


class StoreError(NotedError):
    """An underlying persistence call failed."""


class IndexUnavailable(NotedError):
    """The vector index is absent or cannot embed text right now."""
