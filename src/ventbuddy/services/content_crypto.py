# src/ventbuddy/services/content_crypto.py
"""Content fingerprints and at-rest encryption for vent text."""

from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from ventbuddy.core.settings import settings
from ventbuddy.services.errors import EncryptionError

PREVIEW_SUFFIX = "..."


def content_fingerprint(text: str) -> str:
    """Return ``0x`` + SHA-256 hex of the UTF-8 text."""
    return "0x" + hashlib.sha256(text.encode("utf-8")).hexdigest()


def make_preview(text: str, length: int | None = None) -> str:
    """Return the first ``length`` characters, marked with an ellipsis when cut."""
    limit = settings.preview_length if length is None else length
    if len(text) <= limit:
        return text
    return text[:limit] + PREVIEW_SUFFIX


def _derive_key(secret: str) -> bytes:
    return base64.urlsafe_b64encode(hashlib.sha256(secret.encode("utf-8")).digest())


class ContentCipher:
    """Symmetric encryption of stored content.

    Uses ``CONTENT_ENCRYPTION_KEY`` when set, otherwise a key derived from
    ``SECRET_KEY``.
    """

    def __init__(self, key: str | bytes | None = None) -> None:
        if key is None:
            key = settings.content_encryption_key or _derive_key(settings.secret_key)
        try:
            self._fernet = Fernet(key)
        except ValueError as err:
            raise EncryptionError(f"Invalid content encryption key: {err}") from err

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode()

    def encrypt(self, text: str) -> str:
        return self._fernet.encrypt(text.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> str:
        """Decrypt a stored token.

        Raises:
            EncryptionError: If the token was not produced with this key.
        """
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except InvalidToken as err:
            raise EncryptionError("Stored content could not be decrypted") from err
