# src/ventbuddy/models/content.py
"""SQLAlchemy models for posts and replies."""

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ventbuddy.db.session import Base
from ventbuddy.db.time import utcnow
from ventbuddy.db.types import WeiAmount

CONTENT_TYPE_POST = "post"
CONTENT_TYPE_REPLY = "reply"


class Post(Base):
    """Top-level vent stored off-ledger.

    The ledger keeps only fingerprints and the encrypted visibility selector;
    the text itself lives here, encrypted at rest.
    """

    __tablename__ = "content"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Plain numeric id emitted by the ledger; immutable once assigned.
    ledger_id: Mapped[int | None] = mapped_column(BigInteger, unique=True, nullable=True)
    ledger_tx_hash: Mapped[str | None] = mapped_column(String(66), nullable=True)
    # True when ledger_id was derived from the receipt rather than the creation event.
    ledger_id_is_fallback: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # "0x" + SHA-256 hex of the UTF-8 plaintext.
    content_hash: Mapped[str] = mapped_column(String(66), nullable=False, index=True)
    preview_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    encrypted_content: Mapped[str] = mapped_column(Text, nullable=False)
    encrypted_preview: Mapped[str] = mapped_column(Text, nullable=False)

    # Session-bound encrypted identity of the author, never the wallet address.
    author_id: Mapped[str] = mapped_column(Text, nullable=False)
    min_tip_amount: Mapped[int | None] = mapped_column(WeiAmount(), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class Reply(Base):
    """Reply attached to a post by ledger id."""

    __tablename__ = "replies"
    __table_args__ = (
        UniqueConstraint("post_id", "reply_id", name="uq_replies_post_reply"),
        Index("ix_replies_post_id", "post_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reply_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    ledger_tx_hash: Mapped[str | None] = mapped_column(String(66), nullable=True)
    ledger_id_is_fallback: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    content_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    preview_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    encrypted_content: Mapped[str] = mapped_column(Text, nullable=False)
    encrypted_preview: Mapped[str] = mapped_column(Text, nullable=False)

    author_id: Mapped[str] = mapped_column(Text, nullable=False)
    # Unlock price for tippable replies.
    min_tip_amount: Mapped[int | None] = mapped_column(WeiAmount(), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
