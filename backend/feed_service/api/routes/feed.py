"""Feed API: one keyset-paginated page of a user's ranked feed."""
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from feed_service.core.constants import FEED_DEFAULT_PAGE_SIZE, FEED_MAX_PAGE_SIZE
from feed_service.core.errors import StorageError, feed_error_to_http
from feed_service.db.session import get_db
from feed_service.services.feed.cache_store import CacheStore
from feed_service.services.feed.reader import FeedFilters, fetch_page

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/feed/{user_id}")
def get_feed_page(
    user_id: str,
    cursor: str | None = Query(default=None, description="next_cursor from the previous page; omit for page one"),
    limit: int = Query(default=FEED_DEFAULT_PAGE_SIZE, ge=1, le=FEED_MAX_PAGE_SIZE),
    language: str | None = Query(default=None, max_length=16),
    l1: int | None = Query(default=None, description="Level-1 topic id"),
    l2: int | None = Query(default=None, description="Level-2 topic id"),
    db: Session = Depends(get_db),
):
    """
    Ranked page for user_id: items ordered by score, then publish time, then id (all desc).
    next_cursor is null at end of feed. An undecodable cursor returns page one.
    Retrying with the same cursor is safe.
    """
    try:
        page = fetch_page(CacheStore(db), user_id, cursor, FeedFilters(language=language, l1=l1, l2=l2), limit)
    except StorageError as e:
        logger.warning("Feed page for %s failed: %s", user_id, e)
        raise feed_error_to_http(e)
    return page.to_dict()
