"""User topic/language preferences (owned by onboarding)."""
from sqlalchemy import JSON, Column, DateTime, String
from sqlalchemy.sql import func

from feed_service.db.base import Base


class Preference(Base):
    __tablename__ = "preferences"

    user_id = Column(String(64), primary_key=True)
    selected_topic_ids = Column(JSON, nullable=True)  # list[int]; empty or null = no active preference set
    selected_language_ids = Column(JSON, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
