"""Access-token helpers for wallet sessions."""
from __future__ import annotations

import secrets
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from ventbuddy.core.settings import settings

SESSION_TOKEN_BYTES = 32


def create_access_token(wallet_address: str, extra_claims: dict[str, str] | None = None) -> str:
    """Create a JWT whose subject is the lower-cased wallet address."""
    to_encode: dict[str, object] = {"sub": wallet_address.lower()}
    if extra_claims:
        to_encode.update(extra_claims)
    to_encode["exp"] = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str) -> dict[str, object]:
    """Decode and verify a token.

    Raises:
        JWTError: If the signature, expiry or algorithm is invalid.
    """
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


def new_session_token() -> str:
    """Return a random hex token identifying one wallet session."""
    return secrets.token_hex(SESSION_TOKEN_BYTES)


__all__ = ["JWTError", "create_access_token", "decode_access_token", "new_session_token"]
