"""
Regeneration orchestrator: select users, score them in bounded batches, write fresh rows, report.

selecting -> batching -> invoking (one batch at a time) -> aggregating -> done.

Within a batch every user gets its own future in a thread pool sized to the batch, and all
futures are joined (up to the deadline) before the next batch starts; between batches the orchestrator sleeps
inter_batch_delay_seconds so the scorer never sees more than batch_size requests at once.
A failing user is recorded as "<user>: <message>" and never stops the batch. A user whose
invocation has not finished within user_timeout_seconds of the batch start is recorded as a
timeout and its worker is abandoned. regenerate() always returns a RegenerationResult.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import datetime, timedelta, timezone
from typing import Callable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from feed_service.core.constants import ACTIVE_PROFILE_STATUS, ADMIN_ERROR_PREVIEW_LIMIT
from feed_service.core.errors import (
    SCORER_ERROR_REJECTED,
    SCORER_ERROR_TIMEOUT,
    ScorerInvocationError,
    StorageError,
)
from feed_service.core.regeneration_config import (
    FEED_CACHE_TTL_HOURS,
    REGEN_BATCH_SIZE,
    REGEN_INTER_BATCH_DELAY_SECONDS,
    REGEN_SCORER_LIMIT,
    REGEN_USER_TIMEOUT_SECONDS,
)
from feed_service.models.profile import Profile
from feed_service.services.feed.cache_store import CacheStore
from feed_service.services.regeneration.heartbeat import (
    STATE_AGGREGATING,
    STATE_BATCHING,
    STATE_DONE,
    STATE_INVOKING,
    STATE_SELECTING,
    set_regeneration_heartbeat,
)
from feed_service.services.regeneration.jobs import (
    ForcedJob,
    ManualJob,
    RegenerationJob,
    RegenerationResult,
    ScheduledJob,
    SmartTargetedJob,
)
from feed_service.services.regeneration.staleness import find_users_needing_regeneration
from feed_service.services.scorer.base import Scorer
from feed_service.services.scorer.types import ScorerRequest

logger = logging.getLogger(__name__)


class UserOutcome:
    """Result of one user's invocation inside a batch."""

    __slots__ = ("user_id", "ok", "cache_items", "error")

    def __init__(self, user_id: str, ok: bool, cache_items: int = 0, error: str | None = None):
        self.user_id = user_id
        self.ok = ok
        self.cache_items = cache_items
        self.error = error


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def partition(user_ids: list[str], size: int) -> list[list[str]]:
    """Fixed-size groups in input order; the last one may be short."""
    if size < 1:
        raise ValueError("batch size must be >= 1")
    return [user_ids[i : i + size] for i in range(0, len(user_ids), size)]


class RegenerationOrchestrator:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        scorer: Scorer,
        *,
        batch_size: int = REGEN_BATCH_SIZE,
        inter_batch_delay_seconds: float = REGEN_INTER_BATCH_DELAY_SECONDS,
        user_timeout_seconds: float = REGEN_USER_TIMEOUT_SECONDS,
        scorer_limit: int = REGEN_SCORER_LIMIT,
        cache_ttl_hours: int = FEED_CACHE_TTL_HOURS,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._scorer = scorer
        self.batch_size = max(1, batch_size)
        self.inter_batch_delay_seconds = max(0.0, inter_batch_delay_seconds)
        self.user_timeout_seconds = user_timeout_seconds
        self.scorer_limit = scorer_limit
        self.cache_ttl = timedelta(hours=cache_ttl_hours)
        self._sleep = sleep
        self._clock = clock

    def regenerate(self, job: RegenerationJob) -> RegenerationResult:
        started = time.monotonic()
        result = RegenerationResult(trigger=job.trigger)
        set_regeneration_heartbeat(state=STATE_SELECTING, trigger=job.trigger)
        logger.info("Regeneration %s: selecting users (%r)", job.trigger, job)
        try:
            try:
                user_ids = self.select_users(job)
            except StorageError as e:
                logger.error("Regeneration %s: user selection failed: %s", job.trigger, e)
                result.errors.append(f"selection: {e}")
                return result
            result.total_users = len(user_ids)
            if not user_ids:
                logger.info("Regeneration %s: no users need regeneration", job.trigger)
                return result

            set_regeneration_heartbeat(state=STATE_BATCHING)
            batches = partition(user_ids, self.batch_size)
            logger.info(
                "Regeneration %s: %s user(s) in %s batch(es) of <= %s, %.1fs between batches",
                job.trigger,
                len(user_ids),
                len(batches),
                self.batch_size,
                self.inter_batch_delay_seconds,
            )
            for i, batch in enumerate(batches):
                set_regeneration_heartbeat(state=STATE_INVOKING, batch_index=i + 1, batch_count=len(batches))
                outcomes = self._run_batch(job, batch)
                set_regeneration_heartbeat(state=STATE_AGGREGATING)
                self._aggregate(result, outcomes)
                logger.info(
                    "Regeneration %s: batch %s/%s done (processed=%s errors=%s)",
                    job.trigger,
                    i + 1,
                    len(batches),
                    result.processed,
                    len(result.errors),
                )
                if i < len(batches) - 1 and self.inter_batch_delay_seconds > 0:
                    self._sleep(self.inter_batch_delay_seconds)
            return result
        finally:
            result.duration_seconds = time.monotonic() - started
            set_regeneration_heartbeat(state=STATE_DONE, result=result.to_dict(error_limit=ADMIN_ERROR_PREVIEW_LIMIT))
            logger.info(
                "Regeneration %s complete: users=%s processed=%s succeeded=%s cache_items=%s errors=%s in %.2fs",
                job.trigger,
                result.total_users,
                result.processed,
                result.succeeded,
                result.cache_items,
                len(result.errors),
                result.duration_seconds,
            )

    def select_users(self, job: RegenerationJob) -> list[str]:
        """Target user ids for job. Raises StorageError if the lookup fails, TypeError for an unknown job."""
        if isinstance(job, ManualJob):
            return [job.user_id]
        db = self._session_factory()
        try:
            if isinstance(job, SmartTargetedJob):
                return find_users_needing_regeneration(db, job.min_valid_rows, job.batch_limit, now=self._clock())
            if isinstance(job, (ScheduledJob, ForcedJob)):
                return active_user_ids(db)
            raise TypeError(f"Unknown regeneration job: {job!r}")
        finally:
            db.close()

    def _run_batch(self, job: RegenerationJob, batch: list[str]) -> list[UserOutcome]:
        executor = ThreadPoolExecutor(max_workers=len(batch), thread_name_prefix="feed_regen")
        try:
            futures = [executor.submit(self._regenerate_user, job, user_id) for user_id in batch]
            done, _ = wait(futures, timeout=self.user_timeout_seconds)
        finally:
            # Workers past the deadline are abandoned, not joined, so the next batch starts on time
            executor.shutdown(wait=False, cancel_futures=True)
        outcomes = []
        for user_id, fut in zip(batch, futures):
            if fut not in done:
                exc = ScorerInvocationError(f"no result within {self.user_timeout_seconds}s", SCORER_ERROR_TIMEOUT)
                logger.warning("Regeneration %s for user %s overran its deadline: %s", job.trigger, user_id, exc)
                outcomes.append(UserOutcome(user_id, False, error=f"{user_id}: {exc}"))
                continue
            exc = fut.exception()
            if exc is not None:
                # _regenerate_user records its own failures; this is a crash in the worker itself
                logger.error("Regeneration worker for user %s crashed: %s", user_id, exc)
                outcomes.append(UserOutcome(user_id, False, error=f"{user_id}: {exc}"))
            else:
                outcomes.append(fut.result())
        return outcomes

    def _regenerate_user(self, job: RegenerationJob, user_id: str) -> UserOutcome:
        """One user: optional pre-clear (manual), scorer call, upsert of returned rows."""
        db = self._session_factory()
        store = CacheStore(db)
        try:
            if isinstance(job, ManualJob):
                cleared = store.clear_user(user_id)
                store.commit()
                logger.info("Manual refresh: cleared %s cache rows for user %s", cleared, user_id)
            request = ScorerRequest(
                user_id=user_id,
                trigger=job.trigger,
                limit=self.scorer_limit,
                smart_cache=job.smart_cache,
                force_regeneration=job.force_regeneration,
            )
            response = self._scorer.score_user(request)
            if not response.success:
                raise ScorerInvocationError(response.error or "scorer reported failure", SCORER_ERROR_REJECTED)
            written = 0
            if response.items:
                written = store.upsert_rows(user_id, response.items, self._clock() + self.cache_ttl)
                store.commit()
            cache_items = response.cache_items if response.cache_items is not None else written
            logger.debug("Regenerated user %s: %s cache items", user_id, cache_items)
            return UserOutcome(user_id, True, cache_items=cache_items)
        except Exception as e:
            logger.warning("Regeneration %s failed for user %s: %s", job.trigger, user_id, e)
            return UserOutcome(user_id, False, error=f"{user_id}: {e}")
        finally:
            db.close()

    @staticmethod
    def _aggregate(result: RegenerationResult, outcomes: list[UserOutcome]) -> None:
        for o in outcomes:
            result.processed += 1
            if o.ok:
                result.succeeded += 1
                result.cache_items += o.cache_items
            else:
                result.errors.append(o.error or f"{o.user_id}: unknown error")


def active_user_ids(db: Session) -> list[str]:
    """Onboarded, active users ordered by id (full sweep population)."""
    stmt = (
        select(Profile.id)
        .where(Profile.onboarding_completed.is_(True), Profile.status == ACTIVE_PROFILE_STATUS)
        .order_by(Profile.id)
    )
    try:
        return list(db.execute(stmt).scalars().all())
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError(f"active user query failed: {e}") from e
