"""Scorer HTTP client: lowest level, one POST per user. Maps transport failures to ScorerInvocationError."""
import logging
from typing import Any

import httpx

from feed_service.config import settings
from feed_service.core.errors import (
    SCORER_ERROR_HTTP,
    SCORER_ERROR_INVALID_RESPONSE,
    SCORER_ERROR_TIMEOUT,
    SCORER_ERROR_TRANSPORT,
    ScorerInvocationError,
)
from feed_service.services.scorer.types import ScorerRequest, ScorerResponse

logger = logging.getLogger(__name__)


class HttpScorer:
    """POSTs ScorerRequest payloads to the ranking service (e.g. a background-feed-ranking function)."""

    def __init__(
        self,
        url: str | None = None,
        *,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = (url if url is not None else settings.scorer_url).strip()
        self._api_key = (api_key if api_key is not None else settings.scorer_api_key).strip()
        self.timeout = timeout if timeout is not None else settings.scorer_timeout_seconds
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self.url)

    def _headers(self) -> dict[str, str]:
        h = {"Content-Type": "application/json"}
        if self._api_key:
            h["Authorization"] = f"Bearer {self._api_key}"
        return h

    def _post(self, body: dict[str, Any]) -> Any:
        if not self.is_configured():
            raise ScorerInvocationError("scorer URL not configured. Add SCORER_URL to .env.", SCORER_ERROR_TRANSPORT)
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as c:
                r = c.post(self.url, json=body, headers=self._headers())
        except httpx.TimeoutException as e:
            raise ScorerInvocationError(f"no response within {self.timeout}s ({e.__class__.__name__})", SCORER_ERROR_TIMEOUT) from e
        except httpx.HTTPError as e:
            raise ScorerInvocationError(str(e) or e.__class__.__name__, SCORER_ERROR_TRANSPORT) from e
        if not r.is_success:
            detail = r.text[:500] if r.text else ""
            raise ScorerInvocationError(f"scorer returned {r.status_code} {detail}".strip(), SCORER_ERROR_HTTP)
        try:
            return r.json()
        except ValueError as e:
            raise ScorerInvocationError(f"scorer body is not JSON: {(r.text or '')[:200]}", SCORER_ERROR_INVALID_RESPONSE) from e

    def score_user(self, request: ScorerRequest) -> ScorerResponse:
        payload = self._post(request.to_payload())
        resp = ScorerResponse.from_payload(payload)
        logger.debug(
            "Scorer %s for user %s: success=%s cache_items=%s",
            request.trigger,
            request.user_id,
            resp.success,
            resp.cache_items,
        )
        return resp
