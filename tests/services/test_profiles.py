"""Tests for usernames and profile settings."""

import pytest

from ventbuddy.services.errors import ContentValidationError, UsernameTakenError
from ventbuddy.services.profiles import ProfileService, normalize_username


@pytest.fixture()
def profiles(db_session) -> ProfileService:
    return ProfileService(db_session)


def test_first_save_creates_profile(profiles, author) -> None:
    assert profiles.get(author) is None

    profile = profiles.save(author, {"username": "Quiet_Fox", "display_name": "Fox"})

    assert profile.wallet_address == author.wallet_address
    assert profile.username == "quiet_fox"
    assert profile.display_name == "Fox"
    assert profile.is_username_public is False
    assert profiles.get(author).id == profile.id


def test_partial_update_keeps_other_fields(profiles, author) -> None:
    profiles.save(author, {"username": "quiet_fox", "display_name": "Fox"})

    profile = profiles.save(author, {"bio": "night owl"})

    assert profile.username == "quiet_fox"
    assert profile.display_name == "Fox"
    assert profile.bio == "night owl"


def test_username_is_unique_ignoring_case(profiles, author, viewer) -> None:
    profiles.save(author, {"username": "quiet_fox"})

    with pytest.raises(UsernameTakenError):
        profiles.save(viewer, {"username": "QUIET_FOX"})

    assert profiles.get(viewer) is None
    assert profiles.is_username_available("Quiet_Fox") is False
    # The holder may save its own name again.
    assert profiles.is_username_available("quiet_fox", author) is True
    assert profiles.save(author, {"username": "Quiet_Fox"}).username == "quiet_fox"


def test_released_username_becomes_available(profiles, author, viewer) -> None:
    profiles.save(author, {"username": "quiet_fox"})
    profiles.save(author, {"username": None})

    assert profiles.save(viewer, {"username": "quiet_fox"}).username == "quiet_fox"


@pytest.mark.parametrize("username", ["ab", "has space", "x" * 31, "semi;colon", ""])
def test_malformed_usernames(profiles, author, username) -> None:
    with pytest.raises(ContentValidationError):
        normalize_username(username)
    assert profiles.is_username_available(username) is False


def test_unknown_fields_are_refused(profiles, author) -> None:
    with pytest.raises(ContentValidationError, match="Unknown profile fields"):
        profiles.save(author, {"wallet_address": "0x" + "0" * 40})
