"""
Feed: keyset-paginated reads over user_feed_cache.

- cursor: opaque (score, published_at, id) tokens.
- cache_store: the only read/write surface over user_feed_cache.
- reader: fetch_page (one page + next cursor).
- session: FeedSession, the accumulating single-flight client.
"""

from feed_service.services.feed.cache_store import CacheStore, FeedRow
from feed_service.services.feed.cursor import FeedCursor, cursor_for_row, decode_cursor, encode_cursor
from feed_service.services.feed.reader import FeedFilters, FeedPage, fetch_page
from feed_service.services.feed.session import FeedSession, http_fetcher, store_fetcher

__all__ = [
    "CacheStore",
    "FeedCursor",
    "FeedFilters",
    "FeedPage",
    "FeedRow",
    "FeedSession",
    "cursor_for_row",
    "decode_cursor",
    "encode_cursor",
    "fetch_page",
    "http_fetcher",
    "store_fetcher",
]
