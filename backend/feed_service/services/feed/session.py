"""
Stateful feed session: accumulates pages for one user the way an infinite-scroll client does.

- load_more() is single-flight: while a page is in flight, further calls return False.
- Pages are concatenated with dedupe by item id (a boundary item can reappear if scores drift
  between calls).
- set_filters() resets items and cursor; a page that was in flight for the old filters is
  dropped when it arrives.
- A failed fetch keeps the items and cursor; calling load_more() again retries the same page.

The fetcher is any callable (user_id, cursor, filters, limit) -> FeedPage: store_fetcher reads the
cache store directly, http_fetcher goes through GET /feed/{user_id}.
"""
import logging
import threading
from typing import Any, Callable

import httpx
from sqlalchemy.orm import Session

from feed_service.core.constants import FEED_DEFAULT_PAGE_SIZE
from feed_service.services.feed.cache_store import CacheStore
from feed_service.services.feed.reader import FeedFilters, FeedPage, fetch_page

logger = logging.getLogger(__name__)

PageFetcher = Callable[[str, "str | None", FeedFilters, int], Any]


class FeedSession:
    def __init__(
        self,
        user_id: str,
        fetcher: PageFetcher,
        filters: FeedFilters | None = None,
        page_size: int = FEED_DEFAULT_PAGE_SIZE,
    ) -> None:
        self.user_id = user_id
        self.page_size = page_size
        self._fetcher = fetcher
        self._flight = threading.Lock()
        self._state = threading.Lock()
        self._generation = 0
        self.filters = filters or FeedFilters()
        self.items: list[Any] = []
        self._seen: set[int] = set()
        self.cursor: str | None = None
        self.has_more = True
        self.error: Exception | None = None
        self.pages_loaded = 0

    @property
    def loading(self) -> bool:
        return self._flight.locked()

    def load_more(self) -> bool:
        """
        Fetch the next page and append it. Returns True if a page was applied, False if the call
        was suppressed (request in flight, end of feed) or the page belonged to old filters.
        Fetch errors are stored on self.error and re-raised.
        """
        if not self._flight.acquire(blocking=False):
            logger.debug("Feed load for %s suppressed: request in flight", self.user_id)
            return False
        try:
            with self._state:
                if not self.has_more:
                    return False
                generation = self._generation
                cursor = self.cursor
                filters = self.filters
                self.error = None
            try:
                page = self._fetcher(self.user_id, cursor, filters, self.page_size)
            except Exception as e:
                with self._state:
                    if generation == self._generation:
                        self.error = e
                logger.warning("Feed page fetch failed for %s (cursor=%s): %s", self.user_id, cursor, e)
                raise
            with self._state:
                if generation != self._generation:
                    logger.debug("Dropping feed page for %s: filters changed while in flight", self.user_id)
                    return False
                self._apply(page)
            return True
        finally:
            self._flight.release()

    def _apply(self, page: FeedPage) -> None:
        for row in page.items:
            item_id = _item_id(row)
            if item_id in self._seen:
                continue
            self._seen.add(item_id)
            self.items.append(row)
        self.cursor = page.next_cursor
        self.has_more = bool(page.next_cursor) and len(page.items) >= self.page_size
        self.pages_loaded += 1

    def set_filters(self, filters: FeedFilters | None) -> None:
        """Switch filters; accumulated items and cursor go back to the initial position."""
        with self._state:
            self.filters = filters or FeedFilters()
            self._reset_locked()

    def reset(self) -> None:
        with self._state:
            self._reset_locked()

    def _reset_locked(self) -> None:
        self._generation += 1
        self.items = []
        self._seen = set()
        self.cursor = None
        self.has_more = True
        self.error = None
        self.pages_loaded = 0

    def reload(self) -> bool:
        """Reset with the same filters and load the first page (e.g. after a manual cache refresh)."""
        self.reset()
        return self.load_more()


def _item_id(row: Any) -> int:
    if isinstance(row, dict):
        return row["id"]
    return row.item_id


def store_fetcher(session_factory: Callable[[], Session]) -> PageFetcher:
    """Fetcher that reads the cache store directly, one short-lived Session per page."""

    def fetch(user_id: str, cursor: str | None, filters: FeedFilters, limit: int) -> FeedPage:
        db = session_factory()
        try:
            return fetch_page(CacheStore(db), user_id, cursor, filters, limit)
        finally:
            db.close()

    return fetch


def http_fetcher(client: httpx.Client, path_prefix: str = "/feed") -> PageFetcher:
    """Fetcher over GET {path_prefix}/{user_id}. Items come back as dicts; HTTP errors raise."""

    def fetch(user_id: str, cursor: str | None, filters: FeedFilters, limit: int) -> FeedPage:
        params: dict[str, Any] = {"limit": limit}
        if cursor:
            params["cursor"] = cursor
        if filters.language:
            params["language"] = filters.language
        if filters.l1 is not None:
            params["l1"] = filters.l1
        if filters.l2 is not None:
            params["l2"] = filters.l2
        r = client.get(f"{path_prefix}/{user_id}", params=params)
        r.raise_for_status()
        body = r.json()
        return FeedPage(items=body.get("items") or [], next_cursor=body.get("next_cursor"))

    return fetch
