"""HTTP scorer client: request body, response parsing and failure kinds."""
import json

import httpx
import pytest

from feed_service.core.errors import (
    SCORER_ERROR_HTTP,
    SCORER_ERROR_INVALID_RESPONSE,
    SCORER_ERROR_TIMEOUT,
    SCORER_ERROR_TRANSPORT,
    ScorerInvocationError,
)
from feed_service.services.scorer.client import HttpScorer
from feed_service.services.scorer.types import ScorerRequest, ScorerResponse


def _scorer(handler, **kwargs):
    return HttpScorer("http://scorer.test/rank", transport=httpx.MockTransport(handler), **kwargs)


def _request(**kwargs):
    kwargs.setdefault("user_id", "u1")
    kwargs.setdefault("trigger", "manual")
    kwargs.setdefault("limit", 50)
    return ScorerRequest(**kwargs)


def test_posts_payload_with_bearer_key():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={"success": True, "cache_items": 12})

    resp = _scorer(handler, api_key="secret").score_user(_request(force_regeneration=True))

    assert seen["body"] == {"user_id": "u1", "trigger": "manual", "limit": 50, "force_regeneration": True}
    assert seen["auth"] == "Bearer secret"
    assert resp.success is True
    assert resp.cache_items == 12
    assert resp.items == []


def test_no_auth_header_without_key():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={"success": True})

    _scorer(handler, api_key="").score_user(_request())
    assert seen["auth"] is None


def test_items_are_parsed_and_counted():
    def handler(request):
        return httpx.Response(
            200,
            json={
                "success": True,
                "items": [
                    {"item_id": 7, "score": 0.9, "reason": "Matches your topics", "position": 1},
                    {"item_id": "8", "score": "0.5"},
                ],
            },
        )

    resp = _scorer(handler).score_user(_request())
    assert [(i.item_id, i.score, i.reason, i.position) for i in resp.items] == [
        (7, 0.9, "Matches your topics", 1),
        (8, 0.5, None, None),
    ]
    assert resp.cache_items == 2


def test_unsuccessful_body_is_returned_not_raised():
    def handler(request):
        return httpx.Response(200, json={"success": False, "error": "no preferences"})

    resp = _scorer(handler).score_user(_request())
    assert resp.success is False
    assert resp.error == "no preferences"


@pytest.mark.parametrize(
    "handler, kind",
    [
        (lambda r: httpx.Response(502, text="bad gateway"), SCORER_ERROR_HTTP),
        (lambda r: httpx.Response(200, text="<html>"), SCORER_ERROR_INVALID_RESPONSE),
        (lambda r: httpx.Response(200, json={"cache_items": 3}), SCORER_ERROR_INVALID_RESPONSE),
        (lambda r: httpx.Response(200, json={"success": True, "items": {"x": 1}}), SCORER_ERROR_INVALID_RESPONSE),
        (lambda r: httpx.Response(200, json={"success": True, "items": [{"score": 1}]}), SCORER_ERROR_INVALID_RESPONSE),
    ],
)
def test_bad_responses_raise_with_kind(handler, kind):
    with pytest.raises(ScorerInvocationError) as exc:
        _scorer(handler).score_user(_request())
    assert exc.value.kind == kind
    assert str(exc.value).startswith(f"{kind}: ")


def test_timeout_kind():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(ScorerInvocationError) as exc:
        _scorer(handler, timeout=0.5).score_user(_request())
    assert exc.value.kind == SCORER_ERROR_TIMEOUT
    assert "0.5s" in str(exc.value)


def test_connection_error_is_transport_kind():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ScorerInvocationError) as exc:
        _scorer(handler).score_user(_request())
    assert exc.value.kind == SCORER_ERROR_TRANSPORT


def test_missing_url_is_transport_kind():
    scorer = HttpScorer("")
    assert scorer.is_configured() is False
    with pytest.raises(ScorerInvocationError) as exc:
        scorer.score_user(_request())
    assert exc.value.kind == SCORER_ERROR_TRANSPORT


def test_response_cache_items_defaults():
    assert ScorerResponse(success=True).cache_items is None
    assert ScorerResponse(success=True, items=[]).cache_items == 0
    assert ScorerResponse.from_payload({"success": True, "cache_items": "oops"}).cache_items is None


@pytest.mark.parametrize(
    "body",
    [
        b'{"success": true, "items": [{"item_id": 1, "score": Infinity}, {"item_id": 2, "score": 5.0}]}',
        b'{"success": true, "items": [{"item_id": 1, "score": NaN}]}',
        b'{"success": true, "items": [{"item_id": 1, "score": "-inf"}]}',
    ],
)
def test_non_finite_scores_are_rejected(body):
    def handler(request):
        return httpx.Response(200, content=body, headers={"content-type": "application/json"})

    with pytest.raises(ScorerInvocationError) as exc:
        _scorer(handler).score_user(_request())
    assert exc.value.kind == SCORER_ERROR_INVALID_RESPONSE
    assert "non-finite score" in str(exc.value)
