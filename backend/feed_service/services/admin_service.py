"""
Admin trigger surface: operator commands that build a regeneration job and run it synchronously.

refresh_user      manual job for one user (cache pre-cleared), optional on_complete callback
refresh_stale     smart-targeted job, at most 50 users per call; re-invoke to sweep further
refresh_all       scheduled job over every onboarded, active user
force_refresh_all forced job (same users, scorer ignores existing cache validity)

Sweeps are single-flight per process: a second sweep while one runs raises SweepInProgressError.
Nothing here retries; retry is the operator running the command again.
"""
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable

from sqlalchemy.orm import Session

from feed_service.core.constants import ADMIN_ERROR_PREVIEW_LIMIT, STALE_SWEEP_MAX_USERS
from feed_service.core.errors import SweepInProgressError
from feed_service.core.regeneration_config import REGEN_MIN_VALID_ROWS, REGEN_STALE_BATCH_LIMIT
from feed_service.db.session import SessionLocal
from feed_service.services.feed.cache_store import CacheStore
from feed_service.services.regeneration.jobs import (
    ForcedJob,
    ManualJob,
    RegenerationJob,
    RegenerationResult,
    ScheduledJob,
    SmartTargetedJob,
)
from feed_service.services.regeneration.orchestrator import RegenerationOrchestrator
from feed_service.services.regeneration.staleness import find_users_needing_regeneration
from feed_service.services.scorer.client import HttpScorer

logger = logging.getLogger(__name__)

_sweep_lock = threading.Lock()
_orchestrator: RegenerationOrchestrator | None = None
_orchestrator_lock = threading.Lock()


def get_orchestrator() -> RegenerationOrchestrator:
    """Process-wide orchestrator: SessionLocal + HTTP scorer, tunables from regeneration_config."""
    global _orchestrator
    with _orchestrator_lock:
        if _orchestrator is None:
            _orchestrator = RegenerationOrchestrator(SessionLocal, HttpScorer())
        return _orchestrator


def is_sweep_running() -> bool:
    return _sweep_lock.locked()


def _run_sweep(job: RegenerationJob, orchestrator: RegenerationOrchestrator) -> RegenerationResult:
    if not _sweep_lock.acquire(blocking=False):
        logger.warning("Sweep %s rejected: another sweep is running", job.trigger)
        raise SweepInProgressError(f"cannot start {job.trigger} sweep: another sweep is running")
    try:
        return orchestrator.regenerate(job)
    finally:
        _sweep_lock.release()


def refresh_user(
    user_id: str,
    orchestrator: RegenerationOrchestrator | None = None,
    on_complete: Callable[[RegenerationResult], Any] | None = None,
) -> RegenerationResult:
    """
    Clear and regenerate one user's cache. on_complete runs after the job (e.g. a FeedSession.reload
    so the reader sees the fresh rows). Not blocked by a running sweep: writes are per user.
    """
    orchestrator = orchestrator or get_orchestrator()
    result = orchestrator.regenerate(ManualJob(user_id=user_id))
    if on_complete is not None:
        on_complete(result)
    return result


def refresh_stale(
    min_valid_rows: int = REGEN_MIN_VALID_ROWS,
    batch_limit: int = REGEN_STALE_BATCH_LIMIT,
    orchestrator: RegenerationOrchestrator | None = None,
) -> RegenerationResult:
    """Regenerate users with empty or insufficient caches, at most 50 per call."""
    batch_limit = max(1, min(batch_limit, STALE_SWEEP_MAX_USERS))
    job = SmartTargetedJob(min_valid_rows=min_valid_rows, batch_limit=batch_limit)
    return _run_sweep(job, orchestrator or get_orchestrator())


def refresh_all(orchestrator: RegenerationOrchestrator | None = None) -> RegenerationResult:
    """Regenerate every onboarded, active user's cache (upsert, no pre-clear)."""
    return _run_sweep(ScheduledJob(), orchestrator or get_orchestrator())


def force_refresh_all(orchestrator: RegenerationOrchestrator | None = None) -> RegenerationResult:
    """Like refresh_all but the scorer recomputes even rows that are still valid."""
    return _run_sweep(ForcedJob(), orchestrator or get_orchestrator())


def summarize(result: RegenerationResult) -> dict[str, Any]:
    """Operator view: counts, first ADMIN_ERROR_PREVIEW_LIMIT errors, and a one-line message."""
    out = result.to_dict(error_limit=ADMIN_ERROR_PREVIEW_LIMIT)
    if result.total_users == 0 and not result.errors:
        out["message"] = "No users needed regeneration"
    elif result.errors:
        out["message"] = (
            f"Regenerated {result.succeeded} of {result.total_users} user(s); "
            f"{len(result.errors)} failed"
        )
    else:
        out["message"] = f"Regenerated {result.succeeded} user(s)"
    return out


def list_stale_users(
    db: Session,
    min_valid_rows: int = REGEN_MIN_VALID_ROWS,
    batch_limit: int = REGEN_STALE_BATCH_LIMIT,
) -> list[str]:
    """Preview of what refresh_stale would select. Read-only."""
    return find_users_needing_regeneration(db, min_valid_rows, max(1, min(batch_limit, STALE_SWEEP_MAX_USERS)))


def purge_expired_rows(db: Session) -> dict[str, Any]:
    """Physically delete expired cache rows. Returns {"deleted": n, "purged_at": iso}."""
    now = datetime.now(timezone.utc)
    store = CacheStore(db)
    deleted = store.purge_expired(now)
    store.commit()
    logger.info("purge_expired_rows: deleted %s expired cache rows", deleted)
    return {"deleted": deleted, "purged_at": now.isoformat()}
