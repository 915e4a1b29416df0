"""Optional usernames and display settings for wallets."""

from __future__ import annotations

import logging
import re
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ventbuddy.models.profile import UserProfile
from ventbuddy.repositories.profile_repo import ProfileRepository
from ventbuddy.services.access import Viewer
from ventbuddy.services.errors import ContentValidationError, UsernameTakenError

logger = logging.getLogger(__name__)

USERNAME_RE = re.compile(r"^[A-Za-z0-9_]{3,30}$")
PROFILE_FIELDS = frozenset(
    {"username", "display_name", "bio", "is_username_public", "is_profile_public"}
)


def normalize_username(username: str) -> str:
    """Return the lower-cased username or raise ContentValidationError."""
    if not USERNAME_RE.match(username or ""):
        raise ContentValidationError(
            "Username must be 3-30 characters of letters, numbers and underscores"
        )
    return username.lower()


class ProfileService:
    """Creates and updates the profile bound to a wallet."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.profiles = ProfileRepository(db)

    def get(self, viewer: Viewer) -> UserProfile | None:
        return self.profiles.get_by_wallet(viewer.wallet_address)

    def is_username_available(self, username: str, viewer: Viewer | None = None) -> bool:
        """Return True if nobody else holds ``username``; malformed names are never available."""
        try:
            normalized = normalize_username(username)
        except ContentValidationError:
            return False
        holder = self.profiles.get_by_username(normalized)
        if holder is None:
            return True
        return viewer is not None and holder.wallet_address == viewer.wallet_address.lower()

    def save(self, viewer: Viewer, changes: dict[str, Any]) -> UserProfile:
        """Create the caller's profile or apply ``changes`` to it.

        Only the keys present in ``changes`` are written; a ``None`` username
        releases the current one.

        Raises:
            ContentValidationError: If the username is malformed.
            UsernameTakenError: If another wallet holds the username.
        """
        unknown = set(changes) - PROFILE_FIELDS
        if unknown:
            raise ContentValidationError(f"Unknown profile fields: {sorted(unknown)}")

        if changes.get("username") is not None:
            changes = {**changes, "username": normalize_username(changes["username"])}
            if not self.is_username_available(changes["username"], viewer):
                raise UsernameTakenError(f"Username {changes['username']!r} is already taken")

        profile = self.profiles.get_by_wallet(viewer.wallet_address)
        if profile is None:
            profile = self.profiles.add(viewer.wallet_address)
        for field, value in changes.items():
            setattr(profile, field, value)

        try:
            self.db.commit()
        except IntegrityError as exc:
            # Lost a race for the same username.
            self.db.rollback()
            taken = changes.get("username")
            raise UsernameTakenError(f"Username {taken!r} is already taken") from exc
        self.db.refresh(profile)
        logger.info("Saved profile for wallet %s", profile.wallet_address)
        return profile
