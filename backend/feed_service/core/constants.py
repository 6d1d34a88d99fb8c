"""
Centralized constants for scheduler, feed paging and admin responses.

Change job IDs or caps here instead of scattering literals across main and routes.
Batch size, delays and thresholds come from regeneration_config (env-driven).
"""
from feed_service.core.regeneration_config import (
    FEED_PAGE_SIZE,
    REGEN_FULL_SWEEP_HOUR,
    REGEN_STALE_SWEEP_MINUTES,
)

# Scheduler job IDs (must match ids used in main.py add_job)
STALE_SWEEP_JOB_ID = "feed_cache_stale_sweep"
FULL_SWEEP_JOB_ID = "feed_cache_full_sweep"
PURGE_EXPIRED_JOB_ID = "feed_cache_purge_expired"
PURGE_EXPIRED_INTERVAL_MINUTES = 60

STALE_SWEEP_INTERVAL_MINUTES = REGEN_STALE_SWEEP_MINUTES
FULL_SWEEP_CRON_HOUR = REGEN_FULL_SWEEP_HOUR
FULL_SWEEP_CRON_MINUTE = 5

# Feed paging: default page size from env, hard cap so one request stays bounded
FEED_DEFAULT_PAGE_SIZE = FEED_PAGE_SIZE
FEED_MAX_PAGE_SIZE = 100

# A single stale sweep never selects more than this many users; callers re-invoke to sweep further
STALE_SWEEP_MAX_USERS = 50

# Operators see at most this many per-user error strings in a sweep summary
ADMIN_ERROR_PREVIEW_LIMIT = 10

# Profile.status value for users included in full sweeps
ACTIVE_PROFILE_STATUS = "active"
