"""Data access helpers for user profiles."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ventbuddy.models.profile import UserProfile

__all__ = ["ProfileRepository"]


class ProfileRepository:
    """Reads and writes wallet profiles."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_wallet(self, wallet_address: str) -> UserProfile | None:
        return self.session.execute(
            select(UserProfile).where(UserProfile.wallet_address == wallet_address.lower())
        ).scalars().first()

    def get_by_username(self, username: str) -> UserProfile | None:
        return self.session.execute(
            select(UserProfile).where(UserProfile.username == username)
        ).scalars().first()

    def add(self, wallet_address: str) -> UserProfile:
        profile = UserProfile(wallet_address=wallet_address.lower())
        self.session.add(profile)
        return profile
