"""User profile (owned by onboarding). Full sweeps select onboarded, active profiles."""
from sqlalchemy import Boolean, Column, DateTime, String, false
from sqlalchemy.sql import func

from feed_service.db.base import Base


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True)
    onboarding_completed = Column(Boolean, nullable=False, server_default=false(), default=False)
    status = Column(String(16), nullable=False, server_default="active", default="active")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
