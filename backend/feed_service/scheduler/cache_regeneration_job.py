"""
Scheduled cache upkeep, run by the BackgroundScheduler in main.py:

- stale sweep every STALE_SWEEP_INTERVAL_MINUTES: smart-targeted job (<= 50 users per tick; the
  next tick picks up the rest).
- full sweep daily: scheduled job over every onboarded, active user.
- purge hourly: delete expired rows so the table stays bounded.

Sweeps share the admin single-flight guard; a tick that finds a sweep running is skipped.
"""
import logging

from feed_service.core.errors import SweepInProgressError
from feed_service.core.regeneration_config import REGEN_MIN_VALID_ROWS, REGEN_STALE_BATCH_LIMIT
from feed_service.db.session import SessionLocal
from feed_service.services import admin_service

logger = logging.getLogger(__name__)


def run_stale_sweep_job() -> None:
    try:
        result = admin_service.refresh_stale(REGEN_MIN_VALID_ROWS, REGEN_STALE_BATCH_LIMIT)
    except SweepInProgressError:
        logger.info("Stale sweep tick skipped: a sweep is already running")
        return
    if result.errors:
        logger.warning(
            "Stale sweep: %s/%s users failed; first errors: %s",
            len(result.errors),
            result.total_users,
            result.errors[:3],
        )


def run_full_sweep_job() -> None:
    try:
        result = admin_service.refresh_all()
    except SweepInProgressError:
        logger.info("Full sweep skipped: a sweep is already running")
        return
    if result.errors:
        logger.warning(
            "Full sweep: %s/%s users failed; first errors: %s",
            len(result.errors),
            result.total_users,
            result.errors[:3],
        )


def run_purge_expired_job() -> None:
    db = SessionLocal()
    try:
        admin_service.purge_expired_rows(db)
    except Exception as e:
        logger.warning("Purge of expired cache rows failed (next run retries): %s", e, exc_info=True)
    finally:
        db.close()
