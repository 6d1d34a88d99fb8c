"""Precomputed per-(user, item) ranking rows. Valid while expires_at > now."""
from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.sql import func

from feed_service.db.base import Base


class CacheRow(Base):
    __tablename__ = "user_feed_cache"

    user_id = Column(String(64), primary_key=True)
    item_id = Column(Integer, ForeignKey("feed_items.id", ondelete="CASCADE"), primary_key=True)
    final_score = Column(Float, nullable=False)
    reason_for_ranking = Column(Text, nullable=True)
    position = Column(Integer, nullable=True)  # scorer's rank at write time; ordering uses final_score
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_user_feed_cache_user_expires", "user_id", "expires_at"),)
