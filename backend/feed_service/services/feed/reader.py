"""
Feed reader: keyset pagination over a user's valid cache rows.

One page = valid rows ordered by (final_score desc, published_at desc, id desc), strictly after
the cursor. The same cursor gives the same page for an unchanged cache, so a failed page can
be retried in place.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime

from feed_service.core.constants import FEED_DEFAULT_PAGE_SIZE, FEED_MAX_PAGE_SIZE
from feed_service.core.errors import MalformedCursorError
from feed_service.services.feed.cache_store import CacheStore, FeedRow
from feed_service.services.feed.cursor import cursor_for_row, decode_cursor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedFilters:
    """Optional restriction by language and the first two topic levels."""
    language: str | None = None
    l1: int | None = None
    l2: int | None = None


@dataclass
class FeedPage:
    items: list[FeedRow] = field(default_factory=list)
    next_cursor: str | None = None

    def to_dict(self) -> dict:
        return {"items": [r.to_dict() for r in self.items], "next_cursor": self.next_cursor}


def fetch_page(
    store: CacheStore,
    user_id: str,
    cursor: str | None,
    filters: FeedFilters | None = None,
    limit: int = FEED_DEFAULT_PAGE_SIZE,
    *,
    now: datetime | None = None,
) -> FeedPage:
    """
    Return up to limit rows after cursor and the cursor for the next page.
    next_cursor is None when the page is short (end of feed). A malformed cursor restarts
    from the first page. StorageError propagates.
    """
    if not 1 <= limit <= FEED_MAX_PAGE_SIZE:
        raise ValueError(f"limit must be between 1 and {FEED_MAX_PAGE_SIZE}, got {limit}")
    filters = filters or FeedFilters()
    position = None
    if cursor:
        try:
            position = decode_cursor(cursor)
        except MalformedCursorError as e:
            logger.info("Malformed feed cursor for user %s, restarting from first page: %s", user_id, e)
    rows = store.get_page(
        user_id,
        limit,
        position,
        language=filters.language,
        l1=filters.l1,
        l2=filters.l2,
        now=now,
    )
    next_cursor = cursor_for_row(rows[-1]) if len(rows) == limit else None
    return FeedPage(items=rows, next_cursor=next_cursor)
