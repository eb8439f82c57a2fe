from __future__ import annotations

from typing import Any


class GachaError(Exception):
    """Base class for errors raised by gacha_node."""


class SyncError(GachaError):
    """Raised when talking to the object fails and nobody handles the error.

    ``failure`` is whatever the transport produced: the underlying
    ``requests`` exception, or ``None`` when the object answered with a
    literal ``null`` body.
    """

    def __init__(self, message: str, *, intent: str | None = None, url: str | None = None, failure: Any = None):
        super().__init__(message)
        self.intent = intent
        self.url = url
        self.failure = failure


class UnknownIntentError(GachaError, ValueError):
    """Raised when sync() is asked for an intent it cannot map to a verb."""


class FetchInProgressError(GachaError):
    """Raised when fetch() is called while a previous fetch is still running."""
