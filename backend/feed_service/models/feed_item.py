"""Content items from the ingestion pipeline. Read-only to this service."""
from sqlalchemy import JSON, Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from feed_service.db.base import Base


class FeedItem(Base):
    __tablename__ = "feed_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(Text, nullable=False)
    url = Column(Text, nullable=False)
    summary = Column(Text, nullable=True)
    image_url = Column(Text, nullable=True)
    published_at = Column(DateTime(timezone=True), nullable=False, index=True)
    source_id = Column(Integer, nullable=True)
    source_name = Column(String(256), nullable=True)
    language = Column(String(16), nullable=True, index=True)
    # Topic hierarchy: l1 (broad) -> l2 -> l3 (narrow)
    l1_topic_id = Column(Integer, nullable=True, index=True)
    l2_topic_id = Column(Integer, nullable=True, index=True)
    l3_topic_id = Column(Integer, nullable=True)
    tags = Column(JSON, nullable=True)
    type = Column(String(16), nullable=False, server_default="article")  # article | video | other
    youtube_video_id = Column(String(32), nullable=True)
    youtube_channel_id = Column(String(64), nullable=True)
    youtube_thumbnail_url = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
