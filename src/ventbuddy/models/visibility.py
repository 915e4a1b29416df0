# src/ventbuddy/models/visibility.py
"""Append-only log of visibility changes."""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from ventbuddy.db.session import Base
from ventbuddy.db.time import utcnow

VISIBILITY_PUBLIC = 0
VISIBILITY_TIPPABLE = 1

EVENT_CREATED = "created"
EVENT_UPDATED = "updated"
EVENT_UNLOCKED = "unlocked"
EVENT_REVEALED = "revealed"
EVENT_TYPES = (EVENT_CREATED, EVENT_UPDATED, EVENT_UNLOCKED, EVENT_REVEALED)


class VisibilityEvent(Base):
    """Immutable visibility fact for a post or reply.

    The current visibility of an item is the visibility of its latest event.
    Rows are never updated or deleted.
    """

    __tablename__ = "visibility_events"
    __table_args__ = (
        CheckConstraint("visibility_type IN (0, 1)", name="ck_visibility_events_type"),
        CheckConstraint(
            "event_type IN ('created', 'updated', 'unlocked', 'revealed')",
            name="ck_visibility_events_event_type",
        ),
        CheckConstraint(
            "content_type IN ('post', 'reply')",
            name="ck_visibility_events_content_type",
        ),
        Index("ix_visibility_events_lookup", "content_id", "reply_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reply_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    content_type: Mapped[str] = mapped_column(String(8), nullable=False)

    # 0 = public, 1 = tippable.
    visibility_type: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    event_type: Mapped[str] = mapped_column(String(16), nullable=False)
    actor: Mapped[str | None] = mapped_column(Text, nullable=True)
    encrypted_visibility: Mapped[str | None] = mapped_column(Text, nullable=True)
    content_hash: Mapped[str | None] = mapped_column(String(66), nullable=True)
    preview_hash: Mapped[str | None] = mapped_column(String(66), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
