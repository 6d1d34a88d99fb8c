"""
Admin API: cache regeneration triggers and status.

All triggers run synchronously and return counts plus the first errors. A non-empty errors list
is a partial failure, not a failed request.
"""
import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from feed_service.core.constants import STALE_SWEEP_MAX_USERS
from feed_service.core.errors import StorageError, SweepInProgressError, feed_error_to_http
from feed_service.core.regeneration_config import REGEN_MIN_VALID_ROWS, REGEN_STALE_BATCH_LIMIT, get_regeneration_config
from feed_service.db.session import get_db
from feed_service.services import admin_service
from feed_service.services.feed.cache_store import CacheStore
from feed_service.services.regeneration.heartbeat import get_regeneration_heartbeat
from feed_service.services.regeneration.orchestrator import RegenerationOrchestrator

router = APIRouter()
logger = logging.getLogger(__name__)


def get_orchestrator() -> RegenerationOrchestrator:
    return admin_service.get_orchestrator()


@router.post("/cache/users/{user_id}/refresh")
def refresh_user_cache(user_id: str, orchestrator: RegenerationOrchestrator = Depends(get_orchestrator)):
    """Clear this user's cache and regenerate it now. Reload the feed after this returns."""
    result = admin_service.refresh_user(user_id, orchestrator=orchestrator)
    return admin_service.summarize(result)


@router.post("/cache/refresh-stale")
def refresh_stale_caches(
    min_valid_rows: int = Query(default=REGEN_MIN_VALID_ROWS, ge=1, le=1000),
    batch_limit: int = Query(default=REGEN_STALE_BATCH_LIMIT, ge=1, le=STALE_SWEEP_MAX_USERS),
    orchestrator: RegenerationOrchestrator = Depends(get_orchestrator),
):
    """Regenerate users with empty or insufficient caches (at most 50 per call; call again to continue)."""
    try:
        result = admin_service.refresh_stale(min_valid_rows, batch_limit, orchestrator=orchestrator)
    except SweepInProgressError as e:
        raise feed_error_to_http(e)
    return admin_service.summarize(result)


@router.post("/cache/refresh-all")
def refresh_all_caches(orchestrator: RegenerationOrchestrator = Depends(get_orchestrator)):
    """Regenerate every onboarded, active user's cache."""
    try:
        result = admin_service.refresh_all(orchestrator=orchestrator)
    except SweepInProgressError as e:
        raise feed_error_to_http(e)
    return admin_service.summarize(result)


@router.post("/cache/force-refresh-all")
def force_refresh_all_caches(orchestrator: RegenerationOrchestrator = Depends(get_orchestrator)):
    """Regenerate every active user's cache, recomputing rows that are still valid."""
    try:
        result = admin_service.force_refresh_all(orchestrator=orchestrator)
    except SweepInProgressError as e:
        raise feed_error_to_http(e)
    return admin_service.summarize(result)


@router.get("/cache/stale-users")
def stale_users(
    min_valid_rows: int = Query(default=REGEN_MIN_VALID_ROWS, ge=1, le=1000),
    batch_limit: int = Query(default=REGEN_STALE_BATCH_LIMIT, ge=1, le=STALE_SWEEP_MAX_USERS),
    db: Session = Depends(get_db),
):
    """Users refresh-stale would pick right now. Read-only."""
    try:
        users = admin_service.list_stale_users(db, min_valid_rows, batch_limit)
    except StorageError as e:
        raise feed_error_to_http(e)
    return {"user_ids": users, "count": len(users), "min_valid_rows": min_valid_rows}


@router.get("/cache/users/{user_id}")
def user_cache_status(user_id: str, db: Session = Depends(get_db)):
    """Valid row count for one user."""
    try:
        valid = CacheStore(db).count_valid(user_id)
    except StorageError as e:
        raise feed_error_to_http(e)
    return {"user_id": user_id, "valid_rows": valid, "needs_regeneration": valid < REGEN_MIN_VALID_ROWS}


@router.get("/cache/status")
def regeneration_status():
    """Current/last regeneration run (in-memory), sweep lock state and effective config."""
    out = get_regeneration_heartbeat()
    out["sweep_running"] = admin_service.is_sweep_running()
    out["config"] = asdict(get_regeneration_config())
    return out


@router.post("/cache/purge-expired")
def purge_expired(db: Session = Depends(get_db)):
    """Delete expired rows now (also runs hourly). Readers never see expired rows either way."""
    try:
        return admin_service.purge_expired_rows(db)
    except StorageError as e:
        raise feed_error_to_http(e)
