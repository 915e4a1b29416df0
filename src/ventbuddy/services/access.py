"""Per-viewer access resolution for tip-gated content."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from ventbuddy.models.content import Post, Reply
from ventbuddy.models.visibility import VISIBILITY_TIPPABLE
from ventbuddy.repositories.access_repo import AccessRepository
from ventbuddy.repositories.content_repo import ContentRepository
from ventbuddy.schemas.access import AccessDecision, AccessReason
from ventbuddy.services.errors import ContentNotFoundError
from ventbuddy.services.visibility import VisibilityService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Viewer:
    """A connected wallet and the encrypted identity bound to its session."""

    wallet_address: str
    encrypted_identity: str


def is_locked(visibility: int, min_tip_amount: int | None) -> bool:
    """Return True if an item must be paid for before it can be read.

    An item is gated only when it is tippable and carries a positive threshold.
    Items without any visibility event resolve to tippable, so a positive
    threshold alone is enough to lock them.
    """
    return visibility == VISIBILITY_TIPPABLE and (min_tip_amount or 0) > 0


def decide_access(
    *,
    visibility: int,
    min_tip_amount: int | None,
    author_id: str,
    viewer_identity: str | None,
    has_paid: bool,
) -> AccessDecision:
    """Pure access rule shared by the resolver and the feed."""
    if not is_locked(visibility, min_tip_amount):
        return AccessDecision(has_access=True, reason=AccessReason.PUBLIC)
    if viewer_identity is None:
        return AccessDecision(has_access=False, reason=AccessReason.NOT_CONNECTED)
    if viewer_identity == author_id:
        return AccessDecision(has_access=True, reason=AccessReason.AUTHOR)
    if has_paid:
        return AccessDecision(has_access=True, reason=AccessReason.UNLOCK)
    return AccessDecision(has_access=False, reason=AccessReason.REQUIRES_PAYMENT)


class AccessResolver:
    """Gathers visibility and payment facts and applies the access rule."""

    def __init__(self, db: Session, visibility: VisibilityService) -> None:
        self.db = db
        self.visibility = visibility
        self.access = AccessRepository(db)
        self.content = ContentRepository(db)

    def resolve(self, item: Post | Reply, viewer: Viewer | None) -> AccessDecision:
        """Decide whether ``viewer`` may read ``item``."""
        content_id, reply_id = _item_key(item)
        lookup = self.visibility.get_visibility(content_id, reply_id)

        has_paid = False
        locked = is_locked(lookup.visibility, item.min_tip_amount)
        if locked and viewer is not None and viewer.encrypted_identity != item.author_id:
            has_paid = self.access.has_paid_access(
                content_id, viewer.encrypted_identity, reply_id
            )

        decision = decide_access(
            visibility=lookup.visibility,
            min_tip_amount=item.min_tip_amount,
            author_id=item.author_id,
            viewer_identity=viewer.encrypted_identity if viewer else None,
            has_paid=has_paid,
        )
        logger.debug(
            "Access for %s/%s: %s (%s)",
            content_id,
            reply_id,
            decision.has_access,
            decision.reason.value,
        )
        return decision

    def resolve_post(self, ledger_id: int, viewer: Viewer | None) -> AccessDecision:
        post = self.content.get_post(ledger_id)
        if post is None:
            raise ContentNotFoundError(f"Post {ledger_id} does not exist")
        return self.resolve(post, viewer)

    def resolve_reply(self, post_id: int, reply_id: int, viewer: Viewer | None) -> AccessDecision:
        reply = self.content.get_reply(post_id, reply_id)
        if reply is None:
            raise ContentNotFoundError(f"Reply {post_id}:{reply_id} does not exist")
        return self.resolve(reply, viewer)


def _item_key(item: Post | Reply) -> tuple[int, int | None]:
    if isinstance(item, Reply):
        return item.post_id, item.reply_id
    if item.ledger_id is None:
        raise ContentNotFoundError("Post has no ledger id yet")
    return item.ledger_id, None
