"""Wallet registration: ledger identity plus the local session row."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ventbuddy.core.security import create_access_token, new_session_token
from ventbuddy.repositories.access_repo import SessionRepository
from ventbuddy.services.encryption import EncryptionClient
from ventbuddy.services.errors import ContentValidationError, TransactionRevertedError
from ventbuddy.services.ledger import LedgerAlreadyDone, LedgerClient, LedgerReverted

logger = logging.getLogger(__name__)

WALLET_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


@dataclass(frozen=True)
class RegistrationResult:
    wallet_address: str
    encrypted_address: str
    already_registered: bool
    session_stored: bool
    access_token: str
    tx_hash: str | None = None


def normalize_wallet(wallet_address: str) -> str:
    """Return the lower-cased address or raise ContentValidationError."""
    if not WALLET_ADDRESS_RE.match(wallet_address or ""):
        raise ContentValidationError(f"Invalid wallet address: {wallet_address!r}")
    return wallet_address.lower()


class RegistrationService:
    """Registers a wallet with the ledger and binds its encrypted identity locally."""

    def __init__(self, db: Session, *, encryption: EncryptionClient, ledger: LedgerClient) -> None:
        self.db = db
        self.encryption = encryption
        self.ledger = ledger
        self.sessions = SessionRepository(db)

    async def register(self, wallet_address: str) -> RegistrationResult:
        """Register ``wallet_address``; a wallet that is already registered counts as success.

        Raises:
            NotReadyError: If the encryption service is not ready.
            TransactionRevertedError: If the ledger rejects the registration.
        """
        wallet = normalize_wallet(wallet_address)
        await self.encryption.ensure_ready()
        encrypted = await self.encryption.encrypt_address(wallet, wallet)

        result = await self.ledger.register_user(encrypted.handle, encrypted.proof)
        if isinstance(result, LedgerReverted):
            raise TransactionRevertedError(result.reason, result.tx_hash)

        already_registered = isinstance(result, LedgerAlreadyDone)
        tx_hash = None if already_registered else result.tx_hash
        if already_registered:
            logger.info("Wallet %s already registered on the ledger", wallet)

        identity = encrypted.handle
        session_stored = True
        try:
            existing = self.sessions.get_by_wallet(wallet)
            # Keep the identity bound to earlier content when re-registering.
            if already_registered and existing is not None:
                identity = existing.encrypted_address
            self.sessions.upsert(wallet, identity, new_session_token())
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            session_stored = False
            logger.warning("Registered %s on the ledger but could not store session: %s", wallet, exc)

        return RegistrationResult(
            wallet_address=wallet,
            encrypted_address=identity,
            already_registered=already_registered,
            session_stored=session_stored,
            access_token=create_access_token(wallet),
            tx_hash=tx_hash,
        )
