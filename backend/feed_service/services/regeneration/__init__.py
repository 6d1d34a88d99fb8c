"""
Regeneration: keep user_feed_cache fresh.

- jobs: ManualJob / ScheduledJob / SmartTargetedJob / ForcedJob and RegenerationResult.
- staleness: find_users_needing_regeneration (read-only).
- orchestrator: RegenerationOrchestrator (bounded batches, inter-batch delay, per-user errors).
- heartbeat: in-memory run status for the admin surface.
"""

from feed_service.services.regeneration.heartbeat import get_regeneration_heartbeat, set_regeneration_heartbeat
from feed_service.services.regeneration.jobs import (
    ForcedJob,
    ManualJob,
    RegenerationJob,
    RegenerationResult,
    ScheduledJob,
    SmartTargetedJob,
)
from feed_service.services.regeneration.orchestrator import RegenerationOrchestrator, active_user_ids, partition
from feed_service.services.regeneration.staleness import find_users_needing_regeneration

__all__ = [
    "ForcedJob",
    "ManualJob",
    "RegenerationJob",
    "RegenerationOrchestrator",
    "RegenerationResult",
    "ScheduledJob",
    "SmartTargetedJob",
    "active_user_ids",
    "find_users_needing_regeneration",
    "get_regeneration_heartbeat",
    "partition",
    "set_regeneration_heartbeat",
]
