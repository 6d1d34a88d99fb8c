"""
Error taxonomy for the feed cache and the HTTP mapping used by routes.

Per-user scorer failures are converted into result entries by the orchestrator and never reach
a route. Storage failures on the read path and single-flight conflicts on sweeps do, and are
mapped here so routes stay thin.
"""
from __future__ import annotations

from typing import Callable

from fastapi import HTTPException


class FeedCacheError(Exception):
    """Base class for feed cache errors."""


class MalformedCursorError(FeedCacheError):
    """Client supplied a pagination token that does not decode. Callers restart from page one."""


class StorageError(FeedCacheError):
    """Cache store unreachable or a read/write failed. Fatal to the attempt, never retried here."""


class SweepInProgressError(FeedCacheError):
    """A stale/full sweep is already running in this process."""


# Kinds of scorer failure (ScorerInvocationError.kind)
SCORER_ERROR_TIMEOUT = "timeout"
SCORER_ERROR_TRANSPORT = "transport"
SCORER_ERROR_HTTP = "http"
SCORER_ERROR_REJECTED = "rejected"
SCORER_ERROR_INVALID_RESPONSE = "invalid_response"


class ScorerInvocationError(FeedCacheError):
    """The external scorer call failed or timed out for one user."""

    def __init__(self, message: str, kind: str = SCORER_ERROR_REJECTED) -> None:
        super().__init__(message)
        self.kind = kind

    def __str__(self) -> str:
        return f"{self.kind}: {self.args[0]}"


# ---------------------------------------------------------------------------
# HTTP mapping
# ---------------------------------------------------------------------------

STATUS_CONFLICT = 409
STATUS_SERVICE_UNAVAILABLE = 503  # cache store down
STATUS_INTERNAL_ERROR = 500

MSG_STORAGE_UNAVAILABLE = "Feed cache is temporarily unavailable. Retry the same request."
MSG_SWEEP_IN_PROGRESS = "A cache regeneration sweep is already running. Try again when it finishes."


# List of (predicate, status_code, detail). First match wins.
ERROR_RULES: list[tuple[Callable[[Exception], bool], int, str]] = [
    (lambda e: isinstance(e, StorageError), STATUS_SERVICE_UNAVAILABLE, MSG_STORAGE_UNAVAILABLE),
    (lambda e: isinstance(e, SweepInProgressError), STATUS_CONFLICT, MSG_SWEEP_IN_PROGRESS),
]


def feed_error_to_http(exc: Exception) -> HTTPException:
    """
    Map an exception from the feed reader or admin surface into an HTTPException.
    Uses ERROR_RULES for known error types; otherwise returns 500 with the exception message.
    """
    for predicate, status_code, detail in ERROR_RULES:
        if predicate(exc):
            return HTTPException(status_code=status_code, detail=detail)
    return HTTPException(status_code=STATUS_INTERNAL_ERROR, detail=str(exc))
