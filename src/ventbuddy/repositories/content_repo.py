"""Data access helpers for posts and replies."""
from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ventbuddy.models.content import Post, Reply

__all__ = ["ContentRepository"]


class ContentRepository:
    """Thin wrapper around database access for content records."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_post(self, ledger_id: int) -> Post | None:
        """Return a post by its ledger id."""
        return self.session.execute(
            select(Post).where(Post.ledger_id == ledger_id)
        ).scalars().first()

    def get_reply(self, post_id: int, reply_id: int) -> Reply | None:
        """Return a reply by parent ledger id and reply id."""
        return self.session.execute(
            select(Reply).where(Reply.post_id == post_id, Reply.reply_id == reply_id)
        ).scalars().first()

    def list_recent_posts(self, limit: int | None) -> list[Post]:
        """Return confirmed posts, newest first; ``None`` means no limit."""
        result = self.session.execute(
            select(Post)
            .where(Post.ledger_id.is_not(None))
            .order_by(Post.created_at.desc(), Post.id.desc())
            .limit(limit)
        )
        return list(result.scalars())

    def list_posts_by_author(self, author_id: str) -> list[Post]:
        """Return every post written under an encrypted identity."""
        result = self.session.execute(
            select(Post).where(Post.author_id == author_id).order_by(Post.created_at.desc())
        )
        return list(result.scalars())

    def list_replies(self, post_id: int) -> list[Reply]:
        """Return replies to a post, oldest first."""
        result = self.session.execute(
            select(Reply).where(Reply.post_id == post_id).order_by(Reply.created_at, Reply.id)
        )
        return list(result.scalars())

    def count_replies(self, post_id: int) -> int:
        """Return the number of stored replies for a post."""
        return self.session.execute(
            select(func.count()).select_from(Reply).where(Reply.post_id == post_id)
        ).scalar_one()

    def create_post(
        self,
        *,
        ledger_id: int,
        ledger_tx_hash: str | None,
        ledger_id_is_fallback: bool,
        content_hash: str,
        preview_hash: str,
        encrypted_content: str,
        encrypted_preview: str,
        author_id: str,
        min_tip_amount: int | None,
    ) -> Post:
        """Insert a confirmed post and return the persisted ORM instance."""
        post = Post(
            ledger_id=ledger_id,
            ledger_tx_hash=ledger_tx_hash,
            ledger_id_is_fallback=ledger_id_is_fallback,
            content_hash=content_hash,
            preview_hash=preview_hash,
            encrypted_content=encrypted_content,
            encrypted_preview=encrypted_preview,
            author_id=author_id,
            min_tip_amount=min_tip_amount,
        )
        self.session.add(post)
        self.session.flush()
        return post

    def create_reply(
        self,
        *,
        post_id: int,
        reply_id: int,
        ledger_tx_hash: str | None,
        ledger_id_is_fallback: bool,
        content_hash: str,
        preview_hash: str,
        encrypted_content: str,
        encrypted_preview: str,
        author_id: str,
        min_tip_amount: int | None,
    ) -> Reply:
        """Insert a confirmed reply and return the persisted ORM instance."""
        reply = Reply(
            post_id=post_id,
            reply_id=reply_id,
            ledger_tx_hash=ledger_tx_hash,
            ledger_id_is_fallback=ledger_id_is_fallback,
            content_hash=content_hash,
            preview_hash=preview_hash,
            encrypted_content=encrypted_content,
            encrypted_preview=encrypted_preview,
            author_id=author_id,
            min_tip_amount=min_tip_amount,
        )
        self.session.add(reply)
        self.session.flush()
        return reply
