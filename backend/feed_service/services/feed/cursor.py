"""
Opaque keyset cursor for the ranked feed: (final_score, published_at, item_id).

Token = URL-safe base64 of "<repr(score)>|<published_at ISO-8601>|<item_id>". Only valid
against the order final_score desc, published_at desc, id desc.
"""
import base64
import binascii
import math
from datetime import datetime
from typing import Any, NamedTuple

from feed_service.core.errors import MalformedCursorError

_SEP = "|"


class FeedCursor(NamedTuple):
    score: float
    published_at: datetime
    item_id: int


def encode_cursor(score: float, published_at: datetime, item_id: int) -> str:
    raw = f"{float(score)!r}{_SEP}{published_at.isoformat()}{_SEP}{int(item_id)}"
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


def decode_cursor(token: str) -> FeedCursor:
    """Decode a token from encode_cursor. Raises MalformedCursorError on anything else."""
    if not isinstance(token, str) or not token.strip():
        raise MalformedCursorError("empty cursor")
    token = token.strip()
    try:
        # Tolerate stripped padding (tokens pasted from URLs)
        raw = base64.urlsafe_b64decode(token + "=" * (-len(token) % 4)).decode("utf-8")
    except (binascii.Error, ValueError) as e:
        raise MalformedCursorError(f"cursor is not valid base64: {e}") from e
    parts = raw.split(_SEP)
    if len(parts) != 3:
        raise MalformedCursorError(f"cursor has {len(parts)} fields, expected 3")
    score_s, published_s, id_s = parts
    try:
        score = float(score_s)
        published_at = datetime.fromisoformat(published_s)
        item_id = int(id_s)
    except ValueError as e:
        raise MalformedCursorError(f"cursor field did not parse: {e}") from e
    if not math.isfinite(score):
        raise MalformedCursorError("cursor score is not finite")
    return FeedCursor(score, published_at, item_id)


def cursor_for_row(row: Any) -> str:
    """Cursor positioned at a returned feed row (FeedRow or anything with the same attributes)."""
    return encode_cursor(row.final_score, row.published_at, row.item_id)
