"""
Staleness detector: which users need their cache regenerated.

A user needs regeneration when they have an active preference set (non-empty selected topics)
and fewer than min_valid_rows rows with expires_at > now. Read-only.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from feed_service.core.errors import StorageError
from feed_service.core.regeneration_config import REGEN_MIN_VALID_ROWS, REGEN_STALE_BATCH_LIMIT
from feed_service.models.preference import Preference
from feed_service.services.feed.cache_store import CacheStore

logger = logging.getLogger(__name__)

# Rows pulled per round trip while scanning candidates
_SCAN_CHUNK = 500


def find_users_needing_regeneration(
    db: Session,
    min_valid_rows: int = REGEN_MIN_VALID_ROWS,
    batch_limit: int = REGEN_STALE_BATCH_LIMIT,
    now: datetime | None = None,
) -> list[str]:
    """At most batch_limit user ids, ordered by user id, whose valid row count is below min_valid_rows."""
    if batch_limit <= 0:
        return []
    now = now or datetime.now(timezone.utc)
    counts = CacheStore(db).valid_counts_subquery(now)
    valid = func.coalesce(counts.c.valid_count, 0)
    stmt = (
        select(Preference.user_id, Preference.selected_topic_ids, valid.label("valid_count"))
        .outerjoin(counts, counts.c.user_id == Preference.user_id)
        .where(Preference.selected_topic_ids.is_not(None), valid < min_valid_rows)
        .order_by(Preference.user_id)
        .execution_options(yield_per=_SCAN_CHUNK)
    )
    out: list[str] = []
    try:
        result = db.execute(stmt)
        try:
            # "Non-empty list" is checked here rather than in SQL so the JSON column stays portable
            for user_id, topics, _valid_count in result:
                if not (isinstance(topics, list) and topics):
                    continue
                out.append(user_id)
                if len(out) >= batch_limit:
                    break
        finally:
            result.close()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError(f"staleness query failed: {e}") from e
    logger.debug(
        "Staleness detector: %s user(s) below %s valid rows (limit %s)",
        len(out),
        min_valid_rows,
        batch_limit,
    )
    return out
