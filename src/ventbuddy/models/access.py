# src/ventbuddy/models/access.py
"""Viewer sessions and the access ledger."""

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ventbuddy.db.session import Base
from ventbuddy.db.time import utcnow
from ventbuddy.db.types import WeiAmount

ACCESS_VIEW = "view"
ACCESS_TIP = "tip"
ACCESS_UNLOCK = "unlock"
# Access types that grant entry to a locked item.
PAID_ACCESS_TYPES = (ACCESS_TIP, ACCESS_UNLOCK)


class UserSession(Base):
    """Binds a wallet address to its encrypted identity."""

    __tablename__ = "user_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    wallet_address: Mapped[str] = mapped_column(String(42), unique=True, nullable=False)
    encrypted_address: Mapped[str] = mapped_column(Text, nullable=False)
    session_token: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    last_active: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


class AccessLog(Base):
    """Append-only record of views, tips and unlock payments."""

    __tablename__ = "access_logs"
    __table_args__ = (
        CheckConstraint(
            "access_type IN ('view', 'tip', 'unlock')",
            name="ck_access_logs_type",
        ),
        Index("ix_access_logs_viewer", "content_id", "viewer_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reply_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    content_type: Mapped[str] = mapped_column(String(8), nullable=False)
    viewer_id: Mapped[str] = mapped_column(Text, nullable=False)
    access_type: Mapped[str] = mapped_column(String(8), nullable=False)
    amount_wei: Mapped[int | None] = mapped_column(WeiAmount(), nullable=True)
    tx_hash: Mapped[str | None] = mapped_column(String(66), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
