# src/ventbuddy/models/engagement.py
"""Models capturing voting interactions and the derived counters."""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from ventbuddy.db.session import Base
from ventbuddy.db.time import utcnow

UPVOTE = "upvote"
DOWNVOTE = "downvote"


class Engagement(Base):
    """Per-viewer vote on a post.

    At most one row exists per (content, viewer); switching direction replaces it.
    """

    __tablename__ = "post_engagement"
    __table_args__ = (
        UniqueConstraint("content_id", "viewer_id", name="uq_post_engagement_viewer"),
        CheckConstraint(
            "engagement_type IN ('upvote', 'downvote')",
            name="ck_post_engagement_type",
        ),
        Index("ix_post_engagement_content_id", "content_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    viewer_id: Mapped[str] = mapped_column(Text, nullable=False)
    engagement_type: Mapped[str] = mapped_column(String(8), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


class PostStats(Base):
    """Rebuildable projection of engagement counts per post."""

    __tablename__ = "post_stats"

    content_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    upvote_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    downvote_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reply_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
