#!/usr/bin/env python3
"""
Run a cache regeneration command from the shell (same code path as the admin API).

Run from backend:
  python scripts/regenerate_caches.py user <user_id>
  python scripts/regenerate_caches.py stale [--min-valid-rows 5] [--batch-limit 50]
  python scripts/regenerate_caches.py all [--force]

Exit code 1 if any user failed.
"""
import argparse
import json
import logging
import sys
from pathlib import Path

backend_dir = Path(__file__).resolve().parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from feed_service.core.regeneration_config import REGEN_MIN_VALID_ROWS, REGEN_STALE_BATCH_LIMIT
from feed_service.services import admin_service


def main():
    parser = argparse.ArgumentParser(description="Regenerate user feed caches")
    sub = parser.add_subparsers(dest="command", required=True)
    p_user = sub.add_parser("user", help="Clear and regenerate one user's cache")
    p_user.add_argument("user_id")
    p_stale = sub.add_parser("stale", help="Regenerate users with empty or insufficient caches (<= 50 per run)")
    p_stale.add_argument("--min-valid-rows", type=int, default=REGEN_MIN_VALID_ROWS)
    p_stale.add_argument("--batch-limit", type=int, default=REGEN_STALE_BATCH_LIMIT)
    p_all = sub.add_parser("all", help="Regenerate every onboarded, active user")
    p_all.add_argument("--force", action="store_true", help="Ask the scorer to recompute still-valid rows too")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.command == "user":
        result = admin_service.refresh_user(args.user_id)
    elif args.command == "stale":
        result = admin_service.refresh_stale(args.min_valid_rows, args.batch_limit)
    elif args.force:
        result = admin_service.force_refresh_all()
    else:
        result = admin_service.refresh_all()

    print(json.dumps(admin_service.summarize(result), indent=2))
    if result.errors:
        sys.exit(1)


if __name__ == "__main__":
    main()
