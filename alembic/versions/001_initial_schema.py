"""Initial schema for dining reviews moderation

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Menu items (written by the scraper job)
    op.create_table(
        "menu_items",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("date", sa.String(), nullable=False),
        sa.Column("meal_period", sa.String(), nullable=False),
        sa.Column("station", sa.String(), nullable=False),
        sa.Column("item_name", sa.Text(), nullable=False),
        sa.Column("calories", sa.Integer(), nullable=True),
        sa.Column("allergens", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("source_url", sa.Text(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_menu_items_date", "menu_items", ["date"])

    # Reviews
    op.create_table(
        "reviews",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("menu_item_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("device_id_hash", sa.String(), nullable=True),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("text", sa.Text(), nullable=True),
        sa.Column("emoji", sa.String(), nullable=True),
        sa.Column("photo_url", sa.Text(), nullable=True),
        sa.Column("is_hidden", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("is_flagged", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("moderation_status", sa.String(), nullable=False, server_default="approved"),
        sa.Column("moderation_scores", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("flagged_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["menu_item_id"], ["menu_items.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "(user_id IS NULL) <> (device_id_hash IS NULL)",
            name="ck_reviews_single_author",
        ),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
    )
    op.create_index("ix_reviews_menu_item_id", "reviews", ["menu_item_id"])
    op.create_index("ix_reviews_user_id", "reviews", ["user_id"])
    op.create_index("ix_reviews_device_id_hash", "reviews", ["device_id_hash"])
    op.create_index("ix_reviews_moderation_status", "reviews", ["moderation_status"])
    op.create_index("ix_reviews_created_at", "reviews", ["created_at"])

    # Banned devices: the unique hash is what the ban upsert conflicts on
    op.create_table(
        "banned_devices",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("device_id_hash", sa.String(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("strikes", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("strikes >= 1", name="ck_banned_devices_strikes_positive"),
    )
    op.create_index("ix_banned_devices_device_id_hash", "banned_devices", ["device_id_hash"], unique=True)

    # Moderation audit log (append-only)
    op.create_table(
        "moderation_events",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("content_type", sa.String(), nullable=False),
        sa.Column("content_id", sa.String(), nullable=False),
        sa.Column("device_id_hash", sa.String(), nullable=True),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("scores", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("admin_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_moderation_events_device_id_hash", "moderation_events", ["device_id_hash"])
    op.create_index("ix_moderation_events_action", "moderation_events", ["action"])
    op.create_index("ix_moderation_events_created_at", "moderation_events", ["created_at"])
    op.create_index(
        "ix_moderation_events_content_lookup",
        "moderation_events",
        ["content_type", "content_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_moderation_events_content_lookup", table_name="moderation_events")
    op.drop_index("ix_moderation_events_created_at", table_name="moderation_events")
    op.drop_index("ix_moderation_events_action", table_name="moderation_events")
    op.drop_index("ix_moderation_events_device_id_hash", table_name="moderation_events")
    op.drop_table("moderation_events")
    op.drop_index("ix_banned_devices_device_id_hash", table_name="banned_devices")
    op.drop_table("banned_devices")
    op.drop_index("ix_reviews_created_at", table_name="reviews")
    op.drop_index("ix_reviews_moderation_status", table_name="reviews")
    op.drop_index("ix_reviews_device_id_hash", table_name="reviews")
    op.drop_index("ix_reviews_user_id", table_name="reviews")
    op.drop_index("ix_reviews_menu_item_id", table_name="reviews")
    op.drop_table("reviews")
    op.drop_index("ix_menu_items_date", table_name="menu_items")
    op.drop_table("menu_items")
