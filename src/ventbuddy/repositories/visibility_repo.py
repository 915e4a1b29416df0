"""Append-only store for visibility events."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ventbuddy.models.visibility import EVENT_TYPES, VISIBILITY_PUBLIC, VISIBILITY_TIPPABLE, VisibilityEvent

__all__ = ["VisibilityEventStore"]


class VisibilityEventStore:
    """Thin wrapper around database access for visibility events."""

    def __init__(self, session: Session) -> None:
        """Initialize the store with a SQLAlchemy session."""
        self.session = session

    def append(
        self,
        *,
        content_id: int,
        content_type: str,
        visibility_type: int,
        event_type: str,
        reply_id: int | None = None,
        actor: str | None = None,
        encrypted_visibility: str | None = None,
        content_hash: str | None = None,
        preview_hash: str | None = None,
    ) -> VisibilityEvent:
        """Insert a new event and return it with its store-assigned timestamp.

        Raises:
            ValueError: If the visibility code or event type is unknown.
        """
        if visibility_type not in (VISIBILITY_PUBLIC, VISIBILITY_TIPPABLE):
            raise ValueError(f"Unknown visibility type: {visibility_type}")
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown visibility event type: {event_type}")

        event = VisibilityEvent(
            content_id=content_id,
            reply_id=reply_id,
            content_type=content_type,
            visibility_type=visibility_type,
            event_type=event_type,
            actor=actor,
            encrypted_visibility=encrypted_visibility,
            content_hash=content_hash,
            preview_hash=preview_hash,
        )
        self.session.add(event)
        self.session.flush()
        return event

    def latest(self, content_id: int, reply_id: int | None = None) -> VisibilityEvent | None:
        """Return the most recent event for an item, or None if it has none."""
        stmt = select(VisibilityEvent).where(VisibilityEvent.content_id == content_id)
        if reply_id is None:
            stmt = stmt.where(VisibilityEvent.reply_id.is_(None))
        else:
            stmt = stmt.where(VisibilityEvent.reply_id == reply_id)
        stmt = stmt.order_by(VisibilityEvent.created_at.desc(), VisibilityEvent.id.desc()).limit(1)
        return self.session.execute(stmt).scalars().first()

    def history(self, content_id: int, reply_id: int | None = None) -> list[VisibilityEvent]:
        """Return every event for an item, oldest first."""
        stmt = select(VisibilityEvent).where(VisibilityEvent.content_id == content_id)
        if reply_id is None:
            stmt = stmt.where(VisibilityEvent.reply_id.is_(None))
        else:
            stmt = stmt.where(VisibilityEvent.reply_id == reply_id)
        stmt = stmt.order_by(VisibilityEvent.created_at, VisibilityEvent.id)
        return list(self.session.execute(stmt).scalars())

    def list_after(self, cursor: int, limit: int) -> list[VisibilityEvent]:
        """Return events with an id greater than ``cursor`` in insertion order."""
        stmt = (
            select(VisibilityEvent)
            .where(VisibilityEvent.id > cursor)
            .order_by(VisibilityEvent.id)
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars())

    def max_id(self) -> int:
        """Return the highest event id, or 0 when the log is empty."""
        stmt = select(VisibilityEvent.id).order_by(VisibilityEvent.id.desc()).limit(1)
        return self.session.execute(stmt).scalar() or 0
