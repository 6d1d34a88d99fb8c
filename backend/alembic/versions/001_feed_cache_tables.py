"""Feed items, profiles, preferences and the per-user feed cache.

Revision ID: 001
Revises:
Create Date: (run alembic upgrade head)

- feed_items, profiles, preferences: written by ingestion/onboarding, read here.
- user_feed_cache: one row per (user_id, item_id); valid while expires_at > now.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "feed_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("source_id", sa.Integer(), nullable=True),
        sa.Column("source_name", sa.String(256), nullable=True),
        sa.Column("language", sa.String(16), nullable=True),
        sa.Column("l1_topic_id", sa.Integer(), nullable=True),
        sa.Column("l2_topic_id", sa.Integer(), nullable=True),
        sa.Column("l3_topic_id", sa.Integer(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("type", sa.String(16), nullable=False, server_default="article"),
        sa.Column("youtube_video_id", sa.String(32), nullable=True),
        sa.Column("youtube_channel_id", sa.String(64), nullable=True),
        sa.Column("youtube_thumbnail_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_feed_items_published_at", "feed_items", ["published_at"])
    op.create_index("ix_feed_items_language", "feed_items", ["language"])
    op.create_index("ix_feed_items_l1_topic_id", "feed_items", ["l1_topic_id"])
    op.create_index("ix_feed_items_l2_topic_id", "feed_items", ["l2_topic_id"])

    op.create_table(
        "profiles",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("onboarding_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_table(
        "preferences",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("selected_topic_ids", sa.JSON(), nullable=True),
        sa.Column("selected_language_ids", sa.JSON(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        "user_feed_cache",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column(
            "item_id",
            sa.Integer(),
            sa.ForeignKey("feed_items.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("final_score", sa.Float(), nullable=False),
        sa.Column("reason_for_ranking", sa.Text(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_user_feed_cache_user_expires", "user_feed_cache", ["user_id", "expires_at"])


def downgrade() -> None:
    op.drop_index("ix_user_feed_cache_user_expires", table_name="user_feed_cache")
    op.drop_table("user_feed_cache")
    op.drop_table("preferences")
    op.drop_table("profiles")
    op.drop_index("ix_feed_items_l2_topic_id", table_name="feed_items")
    op.drop_index("ix_feed_items_l1_topic_id", table_name="feed_items")
    op.drop_index("ix_feed_items_language", table_name="feed_items")
    op.drop_index("ix_feed_items_published_at", table_name="feed_items")
    op.drop_table("feed_items")
