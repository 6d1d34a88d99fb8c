"""
Cache regeneration and feed paging config. .env is the source of truth; these defaults apply
only when the env var is unset. All values read at import time.

Env vars: REGEN_BATCH_SIZE, REGEN_INTER_BATCH_DELAY_SECONDS, REGEN_USER_TIMEOUT_SECONDS, REGEN_MIN_VALID_ROWS,
REGEN_STALE_BATCH_LIMIT, REGEN_SCORER_LIMIT, FEED_CACHE_TTL_HOURS, REGEN_STALE_SWEEP_MINUTES,
REGEN_FULL_SWEEP_HOUR, FEED_PAGE_SIZE.

The staleness threshold (REGEN_MIN_VALID_ROWS) and the page size (FEED_PAGE_SIZE) are
independent: a user with enough valid rows to be "healthy" may still not fill a first page.
"""
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load backend/.env so scripts/tests/workers that import this module see the same values as main
_backend_dir = Path(__file__).resolve().parent.parent.parent
load_dotenv(_backend_dir / ".env", override=False)  # no-op if file missing

_log = logging.getLogger(__name__)


def _int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    raw = os.environ.get(key)
    if raw is None:
        v = default
    else:
        try:
            v = int(raw.strip())
        except ValueError:
            v = default
    if min_val is not None and v < min_val:
        v = min_val
    if max_val is not None and v > max_val:
        v = max_val
    return v


def _float(key: str, default: float, min_val: float | None = None, max_val: float | None = None) -> float:
    raw = os.environ.get(key)
    if raw is None:
        v = default
    else:
        try:
            v = float(raw.strip())
        except ValueError:
            v = default
    if min_val is not None and v < min_val:
        v = min_val
    if max_val is not None and v > max_val:
        v = max_val
    return v


# -----------------------------------------------------------------------------
# Orchestrator: batch size and backpressure between batches
# -----------------------------------------------------------------------------
REGEN_BATCH_SIZE = _int("REGEN_BATCH_SIZE", 5, min_val=1, max_val=50)
REGEN_INTER_BATCH_DELAY_SECONDS = _float("REGEN_INTER_BATCH_DELAY_SECONDS", 2.0, min_val=0.0, max_val=60.0)
# Rows requested from the scorer per user
REGEN_SCORER_LIMIT = _int("REGEN_SCORER_LIMIT", 50, min_val=1, max_val=500)
# Wall-clock cap on one user's invocation (scorer call + writes). The HTTP scorer's own timeout is per
# phase, so a slowly trickling response can outlive it; this bounds the batch regardless.
REGEN_USER_TIMEOUT_SECONDS = _float("REGEN_USER_TIMEOUT_SECONDS", 120.0, min_val=0.1, max_val=3600.0)
# Fresh rows expire after this many hours
FEED_CACHE_TTL_HOURS = _int("FEED_CACHE_TTL_HOURS", 24, min_val=1, max_val=24 * 14)

# -----------------------------------------------------------------------------
# Staleness detector
# -----------------------------------------------------------------------------
REGEN_MIN_VALID_ROWS = _int("REGEN_MIN_VALID_ROWS", 5, min_val=1, max_val=1000)
REGEN_STALE_BATCH_LIMIT = _int("REGEN_STALE_BATCH_LIMIT", 50, min_val=1, max_val=50)

# -----------------------------------------------------------------------------
# Scheduler
# -----------------------------------------------------------------------------
REGEN_STALE_SWEEP_MINUTES = _int("REGEN_STALE_SWEEP_MINUTES", 30, min_val=1, max_val=24 * 60)
REGEN_FULL_SWEEP_HOUR = _int("REGEN_FULL_SWEEP_HOUR", 4, min_val=0, max_val=23)

# -----------------------------------------------------------------------------
# Feed reader
# -----------------------------------------------------------------------------
FEED_PAGE_SIZE = _int("FEED_PAGE_SIZE", 30, min_val=1, max_val=100)

# Log effective config at import so each environment can verify env vars are applied
_log.info(
    "Regeneration config (from env): batch_size=%s inter_batch_delay=%ss user_timeout=%ss scorer_limit=%s ttl_hours=%s "
    "min_valid_rows=%s stale_batch_limit=%s stale_sweep_minutes=%s full_sweep_hour=%s page_size=%s",
    REGEN_BATCH_SIZE,
    REGEN_INTER_BATCH_DELAY_SECONDS,
    REGEN_USER_TIMEOUT_SECONDS,
    REGEN_SCORER_LIMIT,
    FEED_CACHE_TTL_HOURS,
    REGEN_MIN_VALID_ROWS,
    REGEN_STALE_BATCH_LIMIT,
    REGEN_STALE_SWEEP_MINUTES,
    REGEN_FULL_SWEEP_HOUR,
    FEED_PAGE_SIZE,
)


@dataclass(frozen=True)
class RegenerationConfig:
    """Snapshot of regeneration config for passing around (e.g. tests)."""
    batch_size: int
    inter_batch_delay_seconds: float
    user_timeout_seconds: float
    scorer_limit: int
    cache_ttl_hours: int
    min_valid_rows: int
    stale_batch_limit: int
    stale_sweep_minutes: int
    full_sweep_hour: int
    page_size: int


def get_regeneration_config() -> RegenerationConfig:
    return RegenerationConfig(
        batch_size=REGEN_BATCH_SIZE,
        inter_batch_delay_seconds=REGEN_INTER_BATCH_DELAY_SECONDS,
        user_timeout_seconds=REGEN_USER_TIMEOUT_SECONDS,
        scorer_limit=REGEN_SCORER_LIMIT,
        cache_ttl_hours=FEED_CACHE_TTL_HOURS,
        min_valid_rows=REGEN_MIN_VALID_ROWS,
        stale_batch_limit=REGEN_STALE_BATCH_LIMIT,
        stale_sweep_minutes=REGEN_STALE_SWEEP_MINUTES,
        full_sweep_hour=REGEN_FULL_SWEEP_HOUR,
        page_size=FEED_PAGE_SIZE,
    )
