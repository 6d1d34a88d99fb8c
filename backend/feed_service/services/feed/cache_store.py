"""
Cache store: the narrow read/write surface over user_feed_cache.

Readers (feed reader, staleness detector) and writers (orchestrator invocations) get an explicit
CacheStore bound to their own Session; nothing else touches user_feed_cache. SQLAlchemy errors are
rolled back and re-raised as StorageError.
"""
import functools
import logging
import math
from datetime import datetime, timezone
from typing import Any, Iterable

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from feed_service.core.errors import StorageError
from feed_service.models.cache_row import CacheRow
from feed_service.models.feed_item import FeedItem
from feed_service.services.feed.cursor import FeedCursor

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _storage_op(fn):
    """Roll back and wrap SQLAlchemy failures so callers see StorageError only."""

    @functools.wraps(fn)
    def wrapper(self: "CacheStore", *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except SQLAlchemyError as e:
            try:
                self.db.rollback()
            except SQLAlchemyError:
                logger.warning("Cache store rollback failed after %s", fn.__name__, exc_info=True)
            raise StorageError(f"{fn.__name__} failed: {e}") from e

    return wrapper


class FeedRow:
    """One ranked feed entry: a valid cache row joined with its item. Detached from the session."""

    __slots__ = (
        "item_id",
        "title",
        "url",
        "summary",
        "image_url",
        "published_at",
        "source_id",
        "source_name",
        "language",
        "tags",
        "l1_topic_id",
        "l2_topic_id",
        "l3_topic_id",
        "type",
        "youtube_video_id",
        "youtube_channel_id",
        "youtube_thumbnail_url",
        "final_score",
        "reason_for_ranking",
    )

    def __init__(self, item: FeedItem, final_score: float, reason_for_ranking: str | None):
        self.item_id = item.id
        self.title = item.title
        self.url = item.url
        self.summary = item.summary
        self.image_url = item.image_url
        self.published_at = item.published_at
        self.source_id = item.source_id
        self.source_name = item.source_name
        self.language = item.language
        self.tags = list(item.tags) if item.tags else None
        self.l1_topic_id = item.l1_topic_id
        self.l2_topic_id = item.l2_topic_id
        self.l3_topic_id = item.l3_topic_id
        self.type = item.type
        self.youtube_video_id = item.youtube_video_id
        self.youtube_channel_id = item.youtube_channel_id
        self.youtube_thumbnail_url = item.youtube_thumbnail_url
        self.final_score = final_score
        self.reason_for_ranking = reason_for_ranking

    def to_dict(self) -> dict[str, Any]:
        out = {name: getattr(self, name) for name in self.__slots__}
        out["id"] = out.pop("item_id")
        published = out["published_at"]
        if published is not None:
            if published.tzinfo is None:
                published = published.replace(tzinfo=timezone.utc)
            out["published_at"] = published.isoformat()
        return out

    def __repr__(self) -> str:
        return f"FeedRow(item_id={self.item_id!r}, final_score={self.final_score!r})"


class CacheStore:
    """Read/write handle for user_feed_cache bound to one Session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    @_storage_op
    def get_page(
        self,
        user_id: str,
        limit: int,
        cursor: FeedCursor | None = None,
        *,
        language: str | None = None,
        l1: int | None = None,
        l2: int | None = None,
        now: datetime | None = None,
    ) -> list[FeedRow]:
        """
        Valid rows for user_id ordered by (final_score desc, published_at desc, id desc),
        strictly after cursor, at most limit rows. Optional language / l1 / l2 topic filters.
        """
        now = now or _utcnow()
        stmt = (
            select(CacheRow.final_score, CacheRow.reason_for_ranking, FeedItem)
            .join(FeedItem, FeedItem.id == CacheRow.item_id)
            .where(CacheRow.user_id == user_id, CacheRow.expires_at > now)
        )
        if language:
            stmt = stmt.where(FeedItem.language == language)
        if l1 is not None:
            stmt = stmt.where(FeedItem.l1_topic_id == l1)
        if l2 is not None:
            stmt = stmt.where(FeedItem.l2_topic_id == l2)
        if cursor is not None:
            stmt = stmt.where(
                or_(
                    CacheRow.final_score < cursor.score,
                    and_(CacheRow.final_score == cursor.score, FeedItem.published_at < cursor.published_at),
                    and_(
                        CacheRow.final_score == cursor.score,
                        FeedItem.published_at == cursor.published_at,
                        FeedItem.id < cursor.item_id,
                    ),
                )
            )
        stmt = stmt.order_by(
            CacheRow.final_score.desc(),
            FeedItem.published_at.desc(),
            FeedItem.id.desc(),
        ).limit(limit)
        return [FeedRow(item, score, reason) for score, reason, item in self.db.execute(stmt).all()]

    @_storage_op
    def count_valid(self, user_id: str, now: datetime | None = None) -> int:
        """Number of rows for user_id with expires_at > now."""
        now = now or _utcnow()
        stmt = select(func.count()).select_from(CacheRow).where(
            CacheRow.user_id == user_id, CacheRow.expires_at > now
        )
        return int(self.db.execute(stmt).scalar_one())

    def valid_counts_subquery(self, now: datetime | None = None):
        """(user_id, valid_count) per user with at least one valid row; join target for the staleness query."""
        now = now or _utcnow()
        return (
            select(CacheRow.user_id.label("user_id"), func.count().label("valid_count"))
            .where(CacheRow.expires_at > now)
            .group_by(CacheRow.user_id)
            .subquery()
        )

    @_storage_op
    def clear_user(self, user_id: str) -> int:
        """Hard-delete every row for user_id (valid or not). Deleting an empty set is a no-op."""
        deleted = (
            self.db.query(CacheRow)
            .filter(CacheRow.user_id == user_id)
            .delete(synchronize_session=False)
        )
        logger.debug("Cleared %s cache rows for user %s", deleted, user_id)
        return deleted

    @_storage_op
    def upsert_rows(self, user_id: str, items: Iterable[Any], expires_at: datetime) -> int:
        """
        Insert or overwrite one row per (user_id, item.item_id). items carry item_id, score and
        optionally reason / position; a repeated item_id keeps the last one.
        Rows for this user not in items are left untouched. A non-finite score raises ValueError
        before anything is written (the cursor cannot position after such a row).
        """
        by_item: dict[int, Any] = {}
        for it in items:
            if not math.isfinite(float(it.score)):
                raise ValueError(f"non-finite score {it.score!r} for item {it.item_id}")
            by_item[int(it.item_id)] = it
        for item_id, it in by_item.items():
            self.db.merge(
                CacheRow(
                    user_id=user_id,
                    item_id=item_id,
                    final_score=float(it.score),
                    reason_for_ranking=getattr(it, "reason", None),
                    position=getattr(it, "position", None),
                    expires_at=expires_at,
                )
            )
        self.db.flush()
        return len(by_item)

    @_storage_op
    def purge_expired(self, now: datetime | None = None) -> int:
        """Physically delete expired rows. Readers never see them anyway; this only bounds the table."""
        now = now or _utcnow()
        return (
            self.db.query(CacheRow)
            .filter(CacheRow.expires_at <= now)
            .delete(synchronize_session=False)
        )

    @_storage_op
    def commit(self) -> None:
        self.db.commit()
