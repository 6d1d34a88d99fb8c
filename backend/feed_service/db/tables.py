"""
Single source of truth for database tables that exist after migrations (001).

Use these names when writing raw SQL. Only user_feed_cache is owned by this service;
feed_items, profiles and preferences are written by ingestion and onboarding.
"""
# All tables that exist in the DB. Must match models and migration 001.
ALL_TABLE_NAMES = (
    "feed_items",
    "profiles",
    "preferences",
    "user_feed_cache",
)
