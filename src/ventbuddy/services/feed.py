"""Ranked feed assembly with per-viewer access."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from ventbuddy.models.content import Post, Reply
from ventbuddy.repositories.content_repo import ContentRepository
from ventbuddy.schemas.content import ContentView, FeedItem, PostDetail
from ventbuddy.schemas.engagement import StatsResponse
from ventbuddy.services import ranking
from ventbuddy.services.access import AccessResolver, Viewer
from ventbuddy.services.content_crypto import ContentCipher
from ventbuddy.services.engagement import EngagementAggregator
from ventbuddy.services.errors import ContentNotFoundError, EncryptionError

logger = logging.getLogger(__name__)


class FeedService:
    """Builds what a viewer sees: ranked items, decrypted only where access is granted."""

    def __init__(
        self,
        db: Session,
        *,
        resolver: AccessResolver,
        engagement: EngagementAggregator,
        cipher: ContentCipher | None = None,
    ) -> None:
        self.db = db
        self.resolver = resolver
        self.engagement = engagement
        self.cipher = cipher or ContentCipher()
        self.content = ContentRepository(db)

    def build_feed(self, viewer: Viewer | None, limit: int = 50) -> list[FeedItem]:
        """Return the most recent ``limit`` posts ordered by ranking score."""
        posts = self.content.list_recent_posts(limit)
        stats = self.engagement.get_many_stats(post.ledger_id for post in posts)
        items = [self._feed_item(post, viewer, stats[post.ledger_id]) for post in posts]
        return ranking.rank(items)

    def get_post(self, ledger_id: int, viewer: Viewer | None) -> PostDetail:
        post = self.content.get_post(ledger_id)
        if post is None:
            raise ContentNotFoundError(f"Post {ledger_id} does not exist")
        item = self._feed_item(post, viewer, self.engagement.get_stats(ledger_id))
        replies = [self._view(reply, viewer) for reply in self.content.list_replies(ledger_id)]
        return PostDetail(**item.model_dump(), replies=replies)

    def list_replies(self, post_id: int, viewer: Viewer | None) -> list[ContentView]:
        return [self._view(reply, viewer) for reply in self.content.list_replies(post_id)]

    def _feed_item(self, post: Post, viewer: Viewer | None, stats: StatsResponse) -> FeedItem:
        view = self._view(post, viewer)
        return FeedItem(
            **view.model_dump(),
            upvote_count=stats.upvote_count,
            downvote_count=stats.downvote_count,
            reply_count=stats.reply_count,
            score=ranking.score(stats.reply_count, stats.upvote_count, stats.downvote_count),
        )

    def _view(self, item: Post | Reply, viewer: Viewer | None) -> ContentView:
        decision = self.resolver.resolve(item, viewer)
        if isinstance(item, Reply):
            ledger_id, reply_id = item.post_id, item.reply_id
        else:
            ledger_id, reply_id = item.ledger_id, None
        visibility = self.resolver.visibility.get_visibility(ledger_id, reply_id).visibility
        # Short vents have a preview equal to the full text, so locked items get neither.
        unlocked = decision.has_access

        return ContentView(
            ledger_id=ledger_id,
            reply_id=reply_id,
            content_hash=item.content_hash,
            preview=self._decrypt(item.encrypted_preview, item.content_hash) if unlocked else None,
            content=self._decrypt(item.encrypted_content, item.content_hash) if unlocked else None,
            min_tip_amount=item.min_tip_amount,
            visibility=visibility,
            access=decision,
            created_at=item.created_at,
        )

    def _decrypt(self, token: str, content_hash: str) -> str | None:
        try:
            return self.cipher.decrypt(token)
        except EncryptionError as exc:
            logger.error("Could not decrypt %s: %s", content_hash, exc)
            return None
