"""
Regeneration jobs and results.

A job is one of four variants; the orchestrator dispatches on the type, never on a free-form
trigger string:
  ManualJob(user_id)        one user, cache pre-cleared before scoring
  ScheduledJob()            all onboarded, active users
  SmartTargetedJob(...)     users the staleness detector flags; scorer told to reuse valid rows
  ForcedJob()               same users as ScheduledJob; scorer told to recompute everything
"""
from dataclasses import dataclass, field
from typing import Any, Union

from feed_service.core.regeneration_config import REGEN_MIN_VALID_ROWS, REGEN_STALE_BATCH_LIMIT

TRIGGER_MANUAL = "manual"
TRIGGER_SCHEDULED = "scheduled"
TRIGGER_SMART_TARGETED = "smart-targeted"
TRIGGER_FORCED = "forced"


@dataclass(frozen=True)
class ManualJob:
    user_id: str
    trigger = TRIGGER_MANUAL
    smart_cache = False
    force_regeneration = False


@dataclass(frozen=True)
class ScheduledJob:
    trigger = TRIGGER_SCHEDULED
    smart_cache = False
    force_regeneration = False


@dataclass(frozen=True)
class SmartTargetedJob:
    min_valid_rows: int = REGEN_MIN_VALID_ROWS
    batch_limit: int = REGEN_STALE_BATCH_LIMIT
    trigger = TRIGGER_SMART_TARGETED
    smart_cache = True
    force_regeneration = False


@dataclass(frozen=True)
class ForcedJob:
    trigger = TRIGGER_FORCED
    smart_cache = False
    force_regeneration = True


RegenerationJob = Union[ManualJob, ScheduledJob, SmartTargetedJob, ForcedJob]


@dataclass
class RegenerationResult:
    """Outcome of one job. errors holds "<user>: <message>" per failed user."""
    trigger: str
    total_users: int = 0
    processed: int = 0
    succeeded: int = 0
    cache_items: int = 0
    errors: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def failed(self) -> int:
        return len(self.errors)

    @property
    def partial_failure(self) -> bool:
        return bool(self.errors)

    def to_dict(self, error_limit: int | None = None) -> dict[str, Any]:
        errors = self.errors if error_limit is None else self.errors[:error_limit]
        return {
            "trigger": self.trigger,
            "total_users": self.total_users,
            "processed": self.processed,
            "succeeded": self.succeeded,
            "cache_items": self.cache_items,
            "error_count": len(self.errors),
            "errors": list(errors),
            "duration_seconds": round(self.duration_seconds, 3),
        }
