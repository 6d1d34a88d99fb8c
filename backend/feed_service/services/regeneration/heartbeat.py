"""
Regeneration heartbeat: in-memory status of the current/last orchestrator run.

Set by the orchestrator as it moves through selecting -> batching -> invoking -> aggregating -> done;
read by GET /admin/cache/status. Per process; resets on restart.
"""
import threading
from datetime import datetime, timezone
from typing import Any

STATE_IDLE = "idle"
STATE_SELECTING = "selecting"
STATE_BATCHING = "batching"
STATE_INVOKING = "invoking"
STATE_AGGREGATING = "aggregating"
STATE_DONE = "done"

_lock = threading.Lock()
_state: str = STATE_IDLE
_trigger: str | None = None
_started_at: datetime | None = None
_finished_at: datetime | None = None
_batch_index: int | None = None
_batch_count: int | None = None
_last_result: dict[str, Any] | None = None
_runs_in_flight: int = 0


def set_regeneration_heartbeat(
    state: str | None = None,
    trigger: str | None = None,
    batch_index: int | None = None,
    batch_count: int | None = None,
    result: dict[str, Any] | None = None,
) -> None:
    global _state, _trigger, _started_at, _finished_at, _batch_index, _batch_count, _last_result, _runs_in_flight
    now = datetime.now(timezone.utc)
    with _lock:
        if state == STATE_SELECTING:
            _runs_in_flight += 1
            _started_at = now
            _finished_at = None
            _batch_index = None
            _batch_count = None
        if state is not None:
            _state = state
        if trigger is not None:
            _trigger = trigger
        if batch_index is not None:
            _batch_index = batch_index
        if batch_count is not None:
            _batch_count = batch_count
        if result is not None:
            _last_result = result
        if state == STATE_DONE:
            _runs_in_flight = max(0, _runs_in_flight - 1)
            _finished_at = now


def get_regeneration_heartbeat() -> dict[str, Any]:
    """Current state, trigger, batch progress, timestamps and the last completed result."""
    with _lock:
        out = {
            "state": _state,
            "trigger": _trigger,
            "is_running": _runs_in_flight > 0,
            "runs_in_flight": _runs_in_flight,
            "batch_index": _batch_index,
            "batch_count": _batch_count,
            "started_at": _started_at.isoformat() if _started_at else None,
            "finished_at": _finished_at.isoformat() if _finished_at else None,
            "last_result": _last_result,
        }
    if _started_at is not None and _finished_at is not None:
        out["last_run_duration_seconds"] = max(0.0, (_finished_at - _started_at).total_seconds())
    return out


def reset_regeneration_heartbeat() -> None:
    """Back to idle (tests)."""
    global _state, _trigger, _started_at, _finished_at, _batch_index, _batch_count, _last_result, _runs_in_flight
    with _lock:
        _state = STATE_IDLE
        _trigger = None
        _started_at = None
        _finished_at = None
        _batch_index = None
        _batch_count = None
        _last_result = None
        _runs_in_flight = 0
