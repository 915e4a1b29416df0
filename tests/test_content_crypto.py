"""Tests for content fingerprints, previews and at-rest encryption."""

import hashlib

import pytest

from ventbuddy.services.content_crypto import ContentCipher, content_fingerprint, make_preview
from ventbuddy.services.errors import EncryptionError


def test_fingerprint_is_prefixed_sha256() -> None:
    text = "I just need someone to hear this."
    expected = "0x" + hashlib.sha256(text.encode("utf-8")).hexdigest()

    assert content_fingerprint(text) == expected
    assert len(content_fingerprint(text)) == 66


def test_preview_keeps_short_text_whole() -> None:
    assert make_preview("short", length=100) == "short"


def test_preview_cuts_long_text_with_ellipsis() -> None:
    assert make_preview("x" * 150, length=100) == "x" * 100 + "..."


def test_cipher_with_other_key_cannot_decrypt() -> None:
    token = ContentCipher(ContentCipher.generate_key()).encrypt("secret vent")

    with pytest.raises(EncryptionError):
        ContentCipher(ContentCipher.generate_key()).decrypt(token)


def test_default_cipher_reads_its_own_tokens(cipher) -> None:
    token = cipher.encrypt("cafe ☕")
    assert token != "cafe ☕"
    assert cipher.decrypt(token) == "cafe ☕"


def test_invalid_key_is_reported() -> None:
    with pytest.raises(EncryptionError):
        ContentCipher("not-a-fernet-key")
