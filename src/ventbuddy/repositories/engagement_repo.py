"""Data access helpers for votes and post statistics."""
from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ventbuddy.db.time import utcnow
from ventbuddy.models.engagement import DOWNVOTE, UPVOTE, Engagement, PostStats

__all__ = ["EngagementRepository"]


class EngagementRepository:
    """Thin wrapper around database access for engagement records."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_vote(self, content_id: int, viewer_id: str) -> Engagement | None:
        """Return the viewer's vote on a post, if any."""
        return self.session.execute(
            select(Engagement).where(
                Engagement.content_id == content_id,
                Engagement.viewer_id == viewer_id,
            )
        ).scalars().first()

    def add_vote(self, content_id: int, viewer_id: str, engagement_type: str) -> Engagement:
        vote = Engagement(
            content_id=content_id,
            viewer_id=viewer_id,
            engagement_type=engagement_type,
        )
        self.session.add(vote)
        self.session.flush()
        return vote

    def delete_vote(self, vote: Engagement) -> None:
        self.session.delete(vote)
        self.session.flush()

    def count_votes(self, content_id: int) -> tuple[int, int]:
        """Return ``(upvotes, downvotes)`` counted from the raw records."""
        rows = self.session.execute(
            select(Engagement.engagement_type, func.count())
            .where(Engagement.content_id == content_id)
            .group_by(Engagement.engagement_type)
        ).all()
        counts = {engagement_type: total for engagement_type, total in rows}
        return counts.get(UPVOTE, 0), counts.get(DOWNVOTE, 0)

    def engaged_content_ids(self) -> list[int]:
        """Return every content id that has at least one vote."""
        result = self.session.execute(
            select(Engagement.content_id).distinct().order_by(Engagement.content_id)
        )
        return list(result.scalars())

    def get_stats(self, content_id: int) -> PostStats | None:
        return self.session.get(PostStats, content_id)

    def get_many_stats(self, content_ids: Iterable[int]) -> list[PostStats]:
        ids = list(content_ids)
        if not ids:
            return []
        result = self.session.execute(select(PostStats).where(PostStats.content_id.in_(ids)))
        return list(result.scalars())

    def upsert_stats(
        self,
        content_id: int,
        *,
        upvote_count: int | None = None,
        downvote_count: int | None = None,
        reply_count: int | None = None,
    ) -> PostStats:
        """Create or update a stats row; fields left as None keep their stored value."""
        stats = self.session.get(PostStats, content_id)
        if stats is None:
            stats = PostStats(
                content_id=content_id,
                upvote_count=0,
                downvote_count=0,
                reply_count=0,
            )
            self.session.add(stats)

        if upvote_count is not None:
            stats.upvote_count = upvote_count
        if downvote_count is not None:
            stats.downvote_count = downvote_count
        if reply_count is not None:
            stats.reply_count = reply_count
        stats.last_updated = utcnow()
        self.session.flush()
        return stats
