"""Protocol for scorers. The HTTP client and test fakes share this contract."""
from typing import Protocol

from feed_service.services.scorer.types import ScorerRequest, ScorerResponse


class Scorer(Protocol):
    """Ranks content for one user. Opaque: the core only looks at success and the returned rows."""

    def score_user(self, request: ScorerRequest) -> ScorerResponse:
        """
        Rank for request.user_id. May raise ScorerInvocationError (timeout, transport, http);
        an unsuccessful ScorerResponse is turned into one by the orchestrator. Implementations
        should bound their own latency; the orchestrator stops waiting after its per-user deadline.
        Scores must be finite.
        """
        ...
