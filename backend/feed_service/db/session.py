"""
Database engine and session factory.

Regeneration workers each open their own Session, so the pool is sized for a full batch of
workers on top of the request handlers. SQLite (local runs, tests) gets cross-thread connections
and a busy timeout instead of pool tuning.
"""
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from feed_service.config import settings
from feed_service.core.regeneration_config import REGEN_BATCH_SIZE

# Connections kept for request handlers, in addition to one per regeneration worker
_REQUEST_POOL_SIZE = 8


def engine_options(database_url: str) -> dict[str, Any]:
    """create_engine kwargs for database_url."""
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False, "timeout": 30}}
    return {
        "pool_size": _REQUEST_POOL_SIZE + REGEN_BATCH_SIZE,
        "max_overflow": 10,
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "pool_timeout": 30,
    }


engine = create_engine(settings.database_url, **engine_options(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
