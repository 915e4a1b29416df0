"""Exception hierarchy shared by the Ventbuddy services."""

from __future__ import annotations


class VentbuddyError(RuntimeError):
    """Base exception raised for service-level failures."""


class ContentValidationError(VentbuddyError):
    """Raised when submitted content or parameters are rejected before any side effect."""


class NotReadyError(VentbuddyError):
    """Raised when the encryption service cannot yet produce encrypted inputs.

    Nothing has been submitted to the ledger when this is raised.
    """


class EncryptionError(VentbuddyError):
    """Raised when the encryption service or the content cipher fails."""


class LedgerError(VentbuddyError):
    """Raised when the ledger gateway cannot be reached or answers unexpectedly."""


class LedgerEventMissingError(LedgerError):
    """Raised when a confirmed transaction carries no parsable creation event.

    Only raised when fallback id derivation is disabled.
    """


class TransactionRevertedError(VentbuddyError):
    """Raised when the ledger rejected a transaction."""

    def __init__(self, reason: str, tx_hash: str | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.tx_hash = tx_hash


class AmbiguousAlreadyDoneError(VentbuddyError):
    """Raised when the ledger reports the action as already applied where that is not benign."""


class PartialWriteError(VentbuddyError):
    """Raised when the ledger step succeeded but the off-ledger record could not be written.

    Callers treat this as a warning: the on-ledger record stands.
    """

    def __init__(self, message: str, ledger_id: int) -> None:
        super().__init__(message)
        self.ledger_id = ledger_id


class NotRegisteredError(VentbuddyError):
    """Raised when an action needs a registered wallet session and none exists."""


class ContentNotFoundError(VentbuddyError, LookupError):
    """Raised when a post or reply is unknown to the store."""


class UsernameTakenError(VentbuddyError):
    """Raised when another wallet already holds the requested username."""
