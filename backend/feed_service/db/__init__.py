from feed_service.db.base import Base
from feed_service.db.session import get_db, engine, SessionLocal
from feed_service.db.tables import ALL_TABLE_NAMES

__all__ = ["get_db", "engine", "SessionLocal", "Base", "ALL_TABLE_NAMES"]
