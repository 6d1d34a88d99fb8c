"""Cursor codec: lossless round trip and malformed input."""
import base64
from datetime import datetime, timedelta, timezone

import pytest

from feed_service.core.errors import MalformedCursorError
from feed_service.services.feed.cursor import FeedCursor, cursor_for_row, decode_cursor, encode_cursor


@pytest.mark.parametrize(
    "score,published_at,item_id",
    [
        (0.7342519873, datetime(2026, 3, 1, 8, 30, 15, 123456, tzinfo=timezone.utc), 42),
        (-1.5, datetime(2025, 12, 31, 23, 59, 59, tzinfo=timezone(timedelta(hours=-5))), 1),
        (1e-12, datetime(2026, 1, 1, 0, 0, 0), 9_999_999),
        (0.1 + 0.2, datetime(2026, 6, 15, 12, 0, 0, 1, tzinfo=timezone.utc), 7),
    ],
)
def test_round_trip_is_exact(score, published_at, item_id):
    decoded = decode_cursor(encode_cursor(score, published_at, item_id))
    assert decoded == FeedCursor(score, published_at, item_id)
    assert decoded.score == score
    assert decoded.published_at.tzinfo == published_at.tzinfo


def test_token_is_url_safe():
    token = encode_cursor(0.123456789, datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc), 99)
    assert all(c.isalnum() or c in "-_=" for c in token)


def test_decode_tolerates_missing_padding():
    token = encode_cursor(8.0, datetime(2026, 1, 2, tzinfo=timezone.utc), 3)
    assert decode_cursor(token.rstrip("=")).item_id == 3


@pytest.mark.parametrize(
    "token",
    [
        "",
        "   ",
        "not base64 at all!!",
        base64.urlsafe_b64encode(b"1.0|2026-01-01T00:00:00").decode(),
        base64.urlsafe_b64encode(b"abc|2026-01-01T00:00:00|1").decode(),
        base64.urlsafe_b64encode(b"1.0|yesterday|1").decode(),
        base64.urlsafe_b64encode(b"1.0|2026-01-01T00:00:00|x").decode(),
        base64.urlsafe_b64encode(b"nan|2026-01-01T00:00:00|1").decode(),
        base64.urlsafe_b64encode(b"\xff\xfe|bad|1").decode(),
    ],
)
def test_malformed_tokens_raise(token):
    with pytest.raises(MalformedCursorError):
        decode_cursor(token)


def test_cursor_for_row_uses_score_time_and_id():
    class Row:
        final_score = 8.0
        published_at = datetime(2026, 2, 2, 2, 2, tzinfo=timezone.utc)
        item_id = 11

    assert decode_cursor(cursor_for_row(Row())) == FeedCursor(8.0, Row.published_at, 11)
