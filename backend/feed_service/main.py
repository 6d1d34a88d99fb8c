"""
FastAPI app entrypoint.

Feed pages (GET /feed/{user_id}) and admin cache triggers (/admin/cache/...). The scheduler keeps
caches fresh in the background.
"""
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env from backend/ before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from feed_service.api.routes import admin, feed
from feed_service.config import settings
from feed_service.core.constants import (
    FULL_SWEEP_CRON_HOUR,
    FULL_SWEEP_CRON_MINUTE,
    FULL_SWEEP_JOB_ID,
    PURGE_EXPIRED_INTERVAL_MINUTES,
    PURGE_EXPIRED_JOB_ID,
    STALE_SWEEP_INTERVAL_MINUTES,
    STALE_SWEEP_JOB_ID,
)
from feed_service.scheduler.cache_regeneration_job import (
    run_full_sweep_job,
    run_purge_expired_job,
    run_stale_sweep_job,
)
from feed_service.services.regeneration.heartbeat import get_regeneration_heartbeat

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

_scheduler = BackgroundScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    _scheduler.add_job(
        run_stale_sweep_job,
        "interval",
        minutes=STALE_SWEEP_INTERVAL_MINUTES,
        id=STALE_SWEEP_JOB_ID,
        max_instances=1,
        coalesce=True,
    )
    _scheduler.add_job(
        run_full_sweep_job,
        "cron",
        hour=FULL_SWEEP_CRON_HOUR,
        minute=FULL_SWEEP_CRON_MINUTE,
        id=FULL_SWEEP_JOB_ID,
        max_instances=1,
        coalesce=True,
    )
    _scheduler.add_job(
        run_purge_expired_job,
        "interval",
        minutes=PURGE_EXPIRED_INTERVAL_MINUTES,
        id=PURGE_EXPIRED_JOB_ID,
        max_instances=1,
    )
    _scheduler.start()
    app.state.scheduler = _scheduler
    logger.info(
        "Feed cache scheduler started: stale sweep every %sm, full sweep daily %02d:%02d, purge every %sm",
        STALE_SWEEP_INTERVAL_MINUTES,
        FULL_SWEEP_CRON_HOUR,
        FULL_SWEEP_CRON_MINUTE,
        PURGE_EXPIRED_INTERVAL_MINUTES,
    )
    yield
    _scheduler.shutdown(wait=False)


app = FastAPI(title="Feed Cache Service", version="0.1.0", lifespan=lifespan)

# CORS: dev origins + optional CORS_ORIGINS env (comma-separated) for the production frontend
_cors_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_cors_extra = settings.cors_origins or os.getenv("CORS_ORIGINS", "")
if _cors_extra:
    _cors_origins.extend(o.strip() for o in _cors_extra.split(",") if o.strip())
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(feed.router, tags=["feed"])
app.include_router(admin.router, prefix="/admin", tags=["admin"])


@app.get("/", include_in_schema=False)
def root():
    """Root: point to API docs and health."""
    return {"message": "Feed Cache API", "docs": "/docs", "health": "/health"}


@app.get("/health")
def health() -> dict:
    hb = get_regeneration_heartbeat()
    return {"status": "ok", "regeneration_state": hb["state"], "regeneration_running": hb["is_running"]}
