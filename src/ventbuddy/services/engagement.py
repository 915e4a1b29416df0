"""Vote toggling and the post statistics projection."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ventbuddy.models.engagement import DOWNVOTE, UPVOTE, PostStats
from ventbuddy.repositories.engagement_repo import EngagementRepository
from ventbuddy.schemas.engagement import StatsResponse

logger = logging.getLogger(__name__)

ENGAGEMENT_TYPES = (UPVOTE, DOWNVOTE)


class EngagementAggregator:
    """Maintains one vote per viewer and post and the derived counters.

    Counters in ``post_stats`` are always recomputed from the raw engagement
    rows, never incremented, so a repair is just another recompute.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = EngagementRepository(db)

    def toggle_vote(self, content_id: int, viewer_id: str, engagement_type: str) -> bool:
        """Toggle a viewer's vote on a post.

        Voting the same way twice removes the vote; voting the other way
        replaces it.

        Args:
            content_id: Ledger id of the post.
            viewer_id: Encrypted identity of the voter.
            engagement_type: ``"upvote"`` or ``"downvote"``.

        Returns:
            True if the vote of this type is now present, False if it was removed.
        """
        if engagement_type not in ENGAGEMENT_TYPES:
            raise ValueError(f"Unknown engagement type: {engagement_type}")

        try:
            existing = self.repo.get_vote(content_id, viewer_id)
            if existing is not None and existing.engagement_type == engagement_type:
                self.repo.delete_vote(existing)
                active = False
            else:
                if existing is not None:
                    self.repo.delete_vote(existing)
                self.repo.add_vote(content_id, viewer_id, engagement_type)
                active = True
        except IntegrityError:
            # A concurrent toggle from the same viewer won the unique constraint.
            self.db.rollback()
            logger.info(
                "Concurrent vote on post %s resolved by unique constraint", content_id
            )
            active = self.get_viewer_vote(content_id, viewer_id) == engagement_type

        self.recompute_stats(content_id)
        self.db.commit()
        return active

    def recompute_stats(self, content_id: int) -> PostStats:
        """Recount votes for a post and upsert its stats, keeping ``reply_count``."""
        upvotes, downvotes = self.repo.count_votes(content_id)
        return self.repo.upsert_stats(
            content_id,
            upvote_count=upvotes,
            downvote_count=downvotes,
        )

    def recompute_all_stats(self) -> int:
        """Rebuild stats for every post with votes; returns how many were repaired."""
        content_ids = self.repo.engaged_content_ids()
        for content_id in content_ids:
            self.recompute_stats(content_id)
        self.db.commit()
        logger.info("Recomputed post stats for %d posts", len(content_ids))
        return len(content_ids)

    def update_reply_count(self, content_id: int, new_count: int) -> PostStats:
        """Set only the reply counter of a post."""
        if new_count < 0:
            raise ValueError("Reply count cannot be negative")
        stats = self.repo.upsert_stats(content_id, reply_count=new_count)
        self.db.commit()
        return stats

    def get_stats(self, content_id: int) -> StatsResponse:
        stats = self.repo.get_stats(content_id)
        if stats is None:
            return StatsResponse(content_id=content_id)
        return StatsResponse.model_validate(stats)

    def get_many_stats(self, content_ids: Iterable[int]) -> dict[int, StatsResponse]:
        """Return stats keyed by content id, zero-filled for ids without a row."""
        ids = list(dict.fromkeys(content_ids))
        found = {
            stats.content_id: StatsResponse.model_validate(stats)
            for stats in self.repo.get_many_stats(ids)
        }
        return {
            content_id: found.get(content_id, StatsResponse(content_id=content_id))
            for content_id in ids
        }

    def get_viewer_vote(self, content_id: int, viewer_id: str) -> str | None:
        vote = self.repo.get_vote(content_id, viewer_id)
        return vote.engagement_type if vote else None
