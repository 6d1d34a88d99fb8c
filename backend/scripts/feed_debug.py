#!/usr/bin/env python3
"""Print a user's ranked feed page by page, straight from the cache store.

Run from backend: python scripts/feed_debug.py <user_id> [--pages 3] [--limit 30] [--language en]

Or with backend running: curl -s "http://127.0.0.1:8000/feed/<user_id>?limit=30" | jq
"""
import argparse
import sys
from pathlib import Path

backend_dir = Path(__file__).resolve().parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from feed_service.db.session import SessionLocal
from feed_service.services.feed import CacheStore, FeedFilters, FeedSession, store_fetcher


def main():
    parser = argparse.ArgumentParser(description="Page through a user's cached feed")
    parser.add_argument("user_id")
    parser.add_argument("--pages", type=int, default=3)
    parser.add_argument("--limit", type=int, default=30)
    parser.add_argument("--language", default=None)
    parser.add_argument("--l1", type=int, default=None)
    parser.add_argument("--l2", type=int, default=None)
    args = parser.parse_args()

    db = SessionLocal()
    try:
        valid = CacheStore(db).count_valid(args.user_id)
    finally:
        db.close()
    print(f"User {args.user_id}: {valid} valid cache rows")
    print("=" * 60)

    session = FeedSession(
        args.user_id,
        store_fetcher(SessionLocal),
        FeedFilters(language=args.language, l1=args.l1, l2=args.l2),
        page_size=args.limit,
    )
    for _ in range(args.pages):
        if not session.load_more():
            break
        print(f"-- after page {session.pages_loaded}: {len(session.items)} items, has_more={session.has_more}")
    for i, row in enumerate(session.items, start=1):
        title = (row.title or "?")[:60]
        print(f"{i:4d}. {row.final_score:.4f}  {row.published_at:%Y-%m-%d %H:%M}  #{row.item_id}  {title}")
        if row.reason_for_ranking:
            print(f"        {row.reason_for_ranking}")
    if not session.items:
        print("(empty: run scripts/regenerate_caches.py user <user_id>)")


if __name__ == "__main__":
    main()
