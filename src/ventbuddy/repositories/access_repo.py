"""Data access helpers for viewer sessions and the access ledger."""
from __future__ import annotations

from sqlalchemy import and_, exists, or_, select
from sqlalchemy.orm import Session

from ventbuddy.db.time import utcnow
from ventbuddy.models.access import PAID_ACCESS_TYPES, AccessLog, UserSession
from ventbuddy.models.content import Post, Reply

__all__ = ["AccessRepository", "SessionRepository"]


class AccessRepository:
    """Reads and appends access-ledger rows."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def has_paid_access(
        self,
        content_id: int,
        viewer_id: str,
        reply_id: int | None = None,
    ) -> bool:
        """Return True if the viewer tipped or unlocked the item."""
        stmt = select(AccessLog.id).where(
            AccessLog.content_id == content_id,
            AccessLog.viewer_id == viewer_id,
            AccessLog.access_type.in_(PAID_ACCESS_TYPES),
        )
        if reply_id is None:
            stmt = stmt.where(AccessLog.reply_id.is_(None))
        else:
            stmt = stmt.where(AccessLog.reply_id == reply_id)
        return self.session.execute(stmt.limit(1)).first() is not None

    def record(
        self,
        *,
        content_id: int,
        content_type: str,
        viewer_id: str,
        access_type: str,
        reply_id: int | None = None,
        amount_wei: int | None = None,
        tx_hash: str | None = None,
    ) -> AccessLog:
        entry = AccessLog(
            content_id=content_id,
            reply_id=reply_id,
            content_type=content_type,
            viewer_id=viewer_id,
            access_type=access_type,
            amount_wei=amount_wei,
            tx_hash=tx_hash,
        )
        self.session.add(entry)
        self.session.flush()
        return entry

    def list_for_viewer(self, viewer_id: str) -> list[AccessLog]:
        result = self.session.execute(
            select(AccessLog)
            .where(AccessLog.viewer_id == viewer_id)
            .order_by(AccessLog.created_at.desc(), AccessLog.id.desc())
        )
        return list(result.scalars())

    def list_earnings(self, author_id: str) -> list[AccessLog]:
        """Return tips and unlocks paid for posts or replies written by ``author_id``."""
        own_posts = select(Post.ledger_id).where(
            Post.author_id == author_id, Post.ledger_id.is_not(None)
        )
        own_reply = exists().where(
            Reply.post_id == AccessLog.content_id,
            Reply.reply_id == AccessLog.reply_id,
            Reply.author_id == author_id,
        )
        result = self.session.execute(
            select(AccessLog)
            .where(
                AccessLog.access_type.in_(PAID_ACCESS_TYPES),
                or_(
                    and_(AccessLog.reply_id.is_(None), AccessLog.content_id.in_(own_posts)),
                    and_(AccessLog.reply_id.is_not(None), own_reply),
                ),
            )
            .order_by(AccessLog.created_at.desc(), AccessLog.id.desc())
        )
        return list(result.scalars())


class SessionRepository:
    """Reads and writes wallet sessions."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_wallet(self, wallet_address: str) -> UserSession | None:
        return self.session.execute(
            select(UserSession).where(UserSession.wallet_address == wallet_address.lower())
        ).scalars().first()

    def upsert(self, wallet_address: str, encrypted_address: str, session_token: str) -> UserSession:
        """Create the session for a wallet or refresh its identity and token."""
        record = self.get_by_wallet(wallet_address)
        if record is None:
            record = UserSession(
                wallet_address=wallet_address.lower(),
                encrypted_address=encrypted_address,
                session_token=session_token,
            )
            self.session.add(record)
        else:
            record.encrypted_address = encrypted_address
            record.session_token = session_token
            record.last_active = utcnow()
        self.session.flush()
        return record

    def touch(self, record: UserSession) -> None:
        record.last_active = utcnow()
        self.session.flush()
