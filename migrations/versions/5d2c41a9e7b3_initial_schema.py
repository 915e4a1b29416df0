"""initial schema

Revision ID: 5d2c41a9e7b3
Revises:
Create Date: 2026-10-19 09:12:40.518310

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from ventbuddy.db.types import WeiAmount

# revision identifiers, used by Alembic.
revision: str = "5d2c41a9e7b3"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create content, visibility, engagement and access tables."""
    op.create_table(
        "content",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("ledger_id", sa.BigInteger(), nullable=True),
        sa.Column("ledger_tx_hash", sa.String(length=66), nullable=True),
        sa.Column("ledger_id_is_fallback", sa.Boolean(), nullable=False),
        sa.Column("content_hash", sa.String(length=66), nullable=False),
        sa.Column("preview_hash", sa.String(length=66), nullable=False),
        sa.Column("encrypted_content", sa.Text(), nullable=False),
        sa.Column("encrypted_preview", sa.Text(), nullable=False),
        sa.Column("author_id", sa.Text(), nullable=False),
        sa.Column("min_tip_amount", WeiAmount(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("ledger_id"),
    )
    op.create_index("ix_content_content_hash", "content", ["content_hash"])

    op.create_table(
        "replies",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("post_id", sa.BigInteger(), nullable=False),
        sa.Column("reply_id", sa.BigInteger(), nullable=True),
        sa.Column("ledger_tx_hash", sa.String(length=66), nullable=True),
        sa.Column("ledger_id_is_fallback", sa.Boolean(), nullable=False),
        sa.Column("content_hash", sa.String(length=66), nullable=False),
        sa.Column("preview_hash", sa.String(length=66), nullable=False),
        sa.Column("encrypted_content", sa.Text(), nullable=False),
        sa.Column("encrypted_preview", sa.Text(), nullable=False),
        sa.Column("author_id", sa.Text(), nullable=False),
        sa.Column("min_tip_amount", WeiAmount(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("post_id", "reply_id", name="uq_replies_post_reply"),
    )
    op.create_index("ix_replies_post_id", "replies", ["post_id"])

    op.create_table(
        "visibility_events",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("content_id", sa.BigInteger(), nullable=False),
        sa.Column("reply_id", sa.BigInteger(), nullable=True),
        sa.Column("content_type", sa.String(length=8), nullable=False),
        sa.Column("visibility_type", sa.SmallInteger(), nullable=False),
        sa.Column("event_type", sa.String(length=16), nullable=False),
        sa.Column("actor", sa.Text(), nullable=True),
        sa.Column("encrypted_visibility", sa.Text(), nullable=True),
        sa.Column("content_hash", sa.String(length=66), nullable=True),
        sa.Column("preview_hash", sa.String(length=66), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("visibility_type IN (0, 1)", name="ck_visibility_events_type"),
        sa.CheckConstraint(
            "event_type IN ('created', 'updated', 'unlocked', 'revealed')",
            name="ck_visibility_events_event_type",
        ),
        sa.CheckConstraint(
            "content_type IN ('post', 'reply')",
            name="ck_visibility_events_content_type",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_visibility_events_lookup",
        "visibility_events",
        ["content_id", "reply_id", "created_at"],
    )

    op.create_table(
        "post_engagement",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("content_id", sa.BigInteger(), nullable=False),
        sa.Column("viewer_id", sa.Text(), nullable=False),
        sa.Column("engagement_type", sa.String(length=8), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "engagement_type IN ('upvote', 'downvote')",
            name="ck_post_engagement_type",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("content_id", "viewer_id", name="uq_post_engagement_viewer"),
    )
    op.create_index("ix_post_engagement_content_id", "post_engagement", ["content_id"])

    op.create_table(
        "post_stats",
        sa.Column("content_id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("upvote_count", sa.Integer(), nullable=False),
        sa.Column("downvote_count", sa.Integer(), nullable=False),
        sa.Column("reply_count", sa.Integer(), nullable=False),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("content_id"),
    )

    op.create_table(
        "user_sessions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("wallet_address", sa.String(length=42), nullable=False),
        sa.Column("encrypted_address", sa.Text(), nullable=False),
        sa.Column("session_token", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_active", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("wallet_address"),
    )

    op.create_table(
        "access_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("content_id", sa.BigInteger(), nullable=False),
        sa.Column("reply_id", sa.BigInteger(), nullable=True),
        sa.Column("content_type", sa.String(length=8), nullable=False),
        sa.Column("viewer_id", sa.Text(), nullable=False),
        sa.Column("access_type", sa.String(length=8), nullable=False),
        sa.Column("amount_wei", WeiAmount(), nullable=True),
        sa.Column("tx_hash", sa.String(length=66), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "access_type IN ('view', 'tip', 'unlock')",
            name="ck_access_logs_type",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_access_logs_viewer", "access_logs", ["content_id", "viewer_id"])


def downgrade() -> None:
    """Drop every table created by this revision."""
    op.drop_index("ix_access_logs_viewer", table_name="access_logs")
    op.drop_table("access_logs")
    op.drop_table("user_sessions")
    op.drop_table("post_stats")
    op.drop_index("ix_post_engagement_content_id", table_name="post_engagement")
    op.drop_table("post_engagement")
    op.drop_index("ix_visibility_events_lookup", table_name="visibility_events")
    op.drop_table("visibility_events")
    op.drop_index("ix_replies_post_id", table_name="replies")
    op.drop_table("replies")
    op.drop_index("ix_content_content_hash", table_name="content")
    op.drop_table("content")
