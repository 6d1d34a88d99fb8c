"""Scorer request/response shapes. Same contract for the HTTP scorer and in-process fakes."""
import math
from typing import Any

from feed_service.core.errors import SCORER_ERROR_INVALID_RESPONSE, ScorerInvocationError


class ScorerRequest:
    """One scorer call: rank content for a single user."""

    __slots__ = ("user_id", "trigger", "limit", "smart_cache", "force_regeneration")

    def __init__(
        self,
        *,
        user_id: str,
        trigger: str,
        limit: int,
        smart_cache: bool = False,
        force_regeneration: bool = False,
    ):
        self.user_id = user_id
        self.trigger = trigger
        self.limit = limit
        self.smart_cache = smart_cache
        self.force_regeneration = force_regeneration

    def to_payload(self) -> dict[str, Any]:
        """Wire body: smart_cache / force_regeneration only when set."""
        body: dict[str, Any] = {"user_id": self.user_id, "trigger": self.trigger, "limit": self.limit}
        if self.smart_cache:
            body["smart_cache"] = True
        if self.force_regeneration:
            body["force_regeneration"] = True
        return body

    def __repr__(self) -> str:
        return f"ScorerRequest(user_id={self.user_id!r}, trigger={self.trigger!r}, limit={self.limit!r})"


class ScoredItem:
    """One ranked item returned by the scorer for the orchestrator to write."""

    __slots__ = ("item_id", "score", "reason", "position")

    def __init__(self, *, item_id: int, score: float, reason: str | None = None, position: int | None = None):
        self.item_id = item_id
        self.score = score
        self.reason = reason
        self.position = position


class ScorerResponse:
    """
    success: whether the scorer ranked the user.
    cache_items: rows the scorer reports (defaults to len(items) when items are returned).
    items: rows for the orchestrator to upsert. Empty when the scorer persists rows itself.
    """

    __slots__ = ("success", "cache_items", "error", "items")

    def __init__(
        self,
        *,
        success: bool,
        cache_items: int | None = None,
        error: str | None = None,
        items: list[ScoredItem] | None = None,
    ):
        self.success = success
        self.items = items or []
        self.cache_items = cache_items if cache_items is not None else (len(self.items) if items is not None else None)
        self.error = error

    @classmethod
    def from_payload(cls, payload: Any) -> "ScorerResponse":
        """Parse a JSON body. Raises ScorerInvocationError(kind=invalid_response) on a bad shape."""
        if not isinstance(payload, dict) or "success" not in payload:
            raise ScorerInvocationError("scorer response missing 'success'", SCORER_ERROR_INVALID_RESPONSE)
        raw_items = payload.get("items")
        items: list[ScoredItem] | None = None
        if raw_items is not None:
            if not isinstance(raw_items, list):
                raise ScorerInvocationError("scorer 'items' is not a list", SCORER_ERROR_INVALID_RESPONSE)
            try:
                items = [
                    ScoredItem(
                        item_id=int(it["item_id"]),
                        score=float(it["score"]),
                        reason=it.get("reason"),
                        position=it.get("position"),
                    )
                    for it in raw_items
                ]
            except (KeyError, TypeError, ValueError) as e:
                raise ScorerInvocationError(f"bad scorer item: {e}", SCORER_ERROR_INVALID_RESPONSE) from e
            for it in items:
                if not math.isfinite(it.score):
                    raise ScorerInvocationError(
                        f"non-finite score {it.score!r} for item {it.item_id}", SCORER_ERROR_INVALID_RESPONSE
                    )
        cache_items = payload.get("cache_items")
        if cache_items is not None:
            try:
                cache_items = int(cache_items)
            except (TypeError, ValueError):
                cache_items = None
        return cls(
            success=bool(payload.get("success")),
            cache_items=cache_items,
            error=payload.get("error"),
            items=items,
        )
