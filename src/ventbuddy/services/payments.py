"""Tips, unlock payments and creator earnings."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ventbuddy.models.access import ACCESS_TIP, ACCESS_UNLOCK
from ventbuddy.models.content import CONTENT_TYPE_POST, CONTENT_TYPE_REPLY, Post, Reply
from ventbuddy.models.visibility import EVENT_UNLOCKED
from ventbuddy.repositories.access_repo import AccessRepository
from ventbuddy.repositories.content_repo import ContentRepository
from ventbuddy.services.access import Viewer, is_locked
from ventbuddy.services.errors import (
    AmbiguousAlreadyDoneError,
    ContentValidationError,
    TransactionRevertedError,
)
from ventbuddy.services.ledger import LedgerAlreadyDone, LedgerClient, LedgerResult, LedgerReverted
from ventbuddy.services.visibility import VisibilityService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentReceipt:
    tx_hash: str
    amount_wei: int
    content_id: int | None = None
    reply_id: int | None = None
    access_type: str | None = None
    recorded: bool = True


@dataclass(frozen=True)
class EarningsItem:
    content_id: int
    reply_id: int | None
    total_wei: int
    payments: int


@dataclass(frozen=True)
class EarningsSummary:
    """Paid access recorded for one author's content."""

    total_wei: int = 0
    tip_wei: int = 0
    unlock_wei: int = 0
    tip_count: int = 0
    unlock_count: int = 0
    items: list[EarningsItem] = field(default_factory=list)


class PaymentService:
    """Submits payments to the ledger and records the access they grant."""

    def __init__(self, db: Session, *, ledger: LedgerClient, visibility: VisibilityService) -> None:
        self.db = db
        self.ledger = ledger
        self.visibility = visibility
        self.access = AccessRepository(db)
        self.content = ContentRepository(db)

    async def tip_post(self, viewer: Viewer, post_id: int, amount_wei: int) -> PaymentReceipt:
        _require_positive(amount_wei)
        self._require_tip_minimum(self.content.get_post(post_id), post_id, None, amount_wei)
        tx_hash = _confirmed(await self.ledger.tip_post(post_id, amount_wei), "tipPost")
        recorded = self._record(viewer, post_id, None, ACCESS_TIP, amount_wei, tx_hash)
        return PaymentReceipt(
            tx_hash=tx_hash,
            amount_wei=amount_wei,
            content_id=post_id,
            access_type=ACCESS_TIP,
            recorded=recorded,
        )

    async def tip_reply(
        self, viewer: Viewer, post_id: int, reply_id: int, amount_wei: int
    ) -> PaymentReceipt:
        _require_positive(amount_wei)
        self._require_tip_minimum(
            self.content.get_reply(post_id, reply_id), post_id, reply_id, amount_wei
        )
        tx_hash = _confirmed(
            await self.ledger.tip_reply(post_id, reply_id, amount_wei), "tipReply"
        )
        recorded = self._record(viewer, post_id, reply_id, ACCESS_TIP, amount_wei, tx_hash)
        return PaymentReceipt(
            tx_hash=tx_hash,
            amount_wei=amount_wei,
            content_id=post_id,
            reply_id=reply_id,
            access_type=ACCESS_TIP,
            recorded=recorded,
        )

    async def unlock_content(self, viewer: Viewer, post_id: int, amount_wei: int) -> PaymentReceipt:
        """Pay to unlock a tippable post for this viewer only.

        The ``unlocked`` event keeps the post's current visibility, so the
        grant is carried by the access ledger and other viewers stay locked.
        """
        _require_positive(amount_wei)
        post = self.content.get_post(post_id)
        if post is not None and post.min_tip_amount and amount_wei < post.min_tip_amount:
            raise ContentValidationError("Tip amount is below the minimum required")

        tx_hash = _confirmed(
            await self.ledger.unlock_tippable_content(post_id, amount_wei),
            "unlockTippableContent",
        )
        recorded = self._record(viewer, post_id, None, ACCESS_UNLOCK, amount_wei, tx_hash)

        current = self.visibility.get_visibility(post_id)
        try:
            self.visibility.log_event(
                post_id,
                visibility_type=current.visibility,
                event_type=EVENT_UNLOCKED,
                actor=viewer.wallet_address,
            )
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Unlock of post %s paid but event not logged: %s", post_id, exc)

        return PaymentReceipt(
            tx_hash=tx_hash,
            amount_wei=amount_wei,
            content_id=post_id,
            access_type=ACCESS_UNLOCK,
            recorded=recorded,
        )

    async def claim_earnings(self, viewer: Viewer, amount_wei: int) -> PaymentReceipt:
        _require_positive(amount_wei)
        tx_hash = _confirmed(await self.ledger.claim_earnings(amount_wei), "claimEarnings")
        logger.info("Wallet %s claimed %d wei in %s", viewer.wallet_address, amount_wei, tx_hash)
        return PaymentReceipt(tx_hash=tx_hash, amount_wei=amount_wei)

    def earnings_summary(self, viewer: Viewer) -> EarningsSummary:
        """Total the tips and unlocks paid for content the viewer wrote.

        Amounts are summed in Python because wei values exceed 64-bit integers.
        """
        totals = {ACCESS_TIP: 0, ACCESS_UNLOCK: 0}
        counts = {ACCESS_TIP: 0, ACCESS_UNLOCK: 0}
        per_item: dict[tuple[int, int | None], list[int]] = {}
        for log in self.access.list_earnings(viewer.encrypted_identity):
            amount = log.amount_wei or 0
            totals[log.access_type] += amount
            counts[log.access_type] += 1
            entry = per_item.setdefault((log.content_id, log.reply_id), [0, 0])
            entry[0] += amount
            entry[1] += 1

        items = [
            EarningsItem(content_id=key[0], reply_id=key[1], total_wei=total, payments=n)
            for key, (total, n) in per_item.items()
        ]
        items.sort(key=lambda item: item.total_wei, reverse=True)
        return EarningsSummary(
            total_wei=totals[ACCESS_TIP] + totals[ACCESS_UNLOCK],
            tip_wei=totals[ACCESS_TIP],
            unlock_wei=totals[ACCESS_UNLOCK],
            tip_count=counts[ACCESS_TIP],
            unlock_count=counts[ACCESS_UNLOCK],
            items=items,
        )

    def _require_tip_minimum(
        self,
        item: Post | Reply | None,
        content_id: int,
        reply_id: int | None,
        amount_wei: int,
    ) -> None:
        """Refuse a tip on a locked item that is below its threshold.

        Any recorded tip grants access, so an underpriced one must never reach the ledger.
        """
        if item is None or not item.min_tip_amount:
            return
        current = self.visibility.get_visibility(content_id, reply_id)
        if is_locked(current.visibility, item.min_tip_amount) and amount_wei < item.min_tip_amount:
            raise ContentValidationError("Tip amount is below the minimum required")

    def _record(
        self,
        viewer: Viewer,
        content_id: int,
        reply_id: int | None,
        access_type: str,
        amount_wei: int,
        tx_hash: str,
    ) -> bool:
        try:
            self.access.record(
                content_id=content_id,
                reply_id=reply_id,
                content_type=CONTENT_TYPE_POST if reply_id is None else CONTENT_TYPE_REPLY,
                viewer_id=viewer.encrypted_identity,
                access_type=access_type,
                amount_wei=amount_wei,
                tx_hash=tx_hash,
            )
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning(
                "Payment %s confirmed but access log not written: %s", tx_hash, exc
            )
            return False
        return True


def _require_positive(amount_wei: int) -> None:
    if amount_wei <= 0:
        raise ContentValidationError("Tip amount must be greater than 0")


def _confirmed(result: LedgerResult, function: str) -> str:
    if isinstance(result, LedgerReverted):
        raise TransactionRevertedError(result.reason, result.tx_hash)
    if isinstance(result, LedgerAlreadyDone):
        raise AmbiguousAlreadyDoneError(f"{function} reported {result.name}")
    return result.tx_hash
