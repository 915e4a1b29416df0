# src/ventbuddy/models/profile.py
"""Optional public profile attached to a wallet."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ventbuddy.db.session import Base
from ventbuddy.db.time import utcnow


class UserProfile(Base):
    """Username and display settings chosen by a wallet.

    Posts never reference a profile; they stay keyed by the encrypted identity.
    """

    __tablename__ = "user_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    wallet_address: Mapped[str] = mapped_column(String(42), unique=True, nullable=False)
    # Stored lower-cased so uniqueness ignores case.
    username: Mapped[str | None] = mapped_column(String(30), unique=True, nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_username_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_profile_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
