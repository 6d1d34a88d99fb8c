"""External scorer boundary: request/response types, the Scorer protocol and the HTTP client."""

from feed_service.services.scorer.base import Scorer
from feed_service.services.scorer.client import HttpScorer
from feed_service.services.scorer.types import ScoredItem, ScorerRequest, ScorerResponse

__all__ = ["HttpScorer", "ScoredItem", "Scorer", "ScorerRequest", "ScorerResponse"]
