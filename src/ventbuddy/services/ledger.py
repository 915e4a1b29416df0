"""Client for the ledger gateway.

Every state-changing call goes through :meth:`LedgerClient.submit`, which
returns a tagged result instead of raising on a rejected transaction:

- :class:`LedgerSuccess` when the transaction was mined with status 1;
- :class:`LedgerAlreadyDone` when the gateway reports a known "already done"
  error selector (for example a second registration of the same wallet);
- :class:`LedgerReverted` with a best-effort human reason otherwise.

Transport problems still raise :class:`LedgerError`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import httpx

from ventbuddy.core.settings import settings
from ventbuddy.services.errors import LedgerError, LedgerEventMissingError

logger = logging.getLogger(__name__)

HTTP_OK = 200
HTTP_ACCEPTED = 202
HTTP_NOT_FOUND = 404

RECEIPT_STATUS_SUCCESS = 1
FALLBACK_ID_MODULUS = 1_000_000
ZERO_HASH = "0x" + "0" * 64

# Error selectors meaning "this was already applied".
ALREADY_DONE_SELECTORS: dict[str, str] = {
    "0xb9688461": "UserAlreadyRegistered",
}

# Substring found in a simulated revert -> message shown to the caller.
KNOWN_REVERT_REASONS: tuple[tuple[str, str], ...] = (
    ("User not registered", "User not registered in the contract"),
    ("Post does not exist", "Post does not exist on the contract"),
    ("contentHash != bytes32(0)", "Post does not exist on the contract"),
    ("No zero tips", "Tip amount must be greater than 0"),
    ("Tip amount below minimum required", "Tip amount is below the minimum required"),
    ("insufficient funds", "Insufficient ETH balance"),
    ("Pausable: paused", "Contract is paused"),
    ("ReentrancyGuard", "Reentrancy protection triggered"),
    ("Tip amount too large", "Tip amount is too large"),
)

UNKNOWN_REVERT_REASON = "Transaction reverted"


@dataclass(frozen=True)
class LedgerConfig:
    """Immutable configuration for ledger operations."""

    base_url: str | None
    contract_address: str | None
    timeout_seconds: float
    receipt_poll_seconds: float
    allow_fallback_ids: bool


@dataclass(frozen=True)
class LedgerReceipt:
    tx_hash: str
    status: int
    block_number: int
    transaction_index: int
    gas_used: int | None = None
    logs: Sequence[Mapping[str, Any]] = field(default_factory=tuple)

    @property
    def succeeded(self) -> bool:
        return self.status == RECEIPT_STATUS_SUCCESS


@dataclass(frozen=True)
class LedgerSuccess:
    tx_hash: str
    receipt: LedgerReceipt


@dataclass(frozen=True)
class LedgerAlreadyDone:
    selector: str
    name: str
    tx_hash: str | None = None


@dataclass(frozen=True)
class LedgerReverted:
    reason: str
    tx_hash: str | None = None


LedgerResult = LedgerSuccess | LedgerAlreadyDone | LedgerReverted


@dataclass(frozen=True)
class CreatedId:
    """Numeric id assigned by the ledger to a new post or reply."""

    value: int
    is_fallback: bool


def load_ledger_config() -> LedgerConfig:
    """Build configuration object from global settings."""
    return LedgerConfig(
        base_url=settings.ledger_gateway_url,
        contract_address=settings.ledger_contract_address,
        timeout_seconds=float(settings.ledger_http_timeout_seconds),
        receipt_poll_seconds=float(settings.ledger_receipt_poll_seconds),
        allow_fallback_ids=settings.ledger_allow_fallback_ids,
    )


def explain_revert(message: str | None) -> str:
    """Map a raw revert message to a human reason; unknown messages pass through."""
    if not message:
        return UNKNOWN_REVERT_REASON
    for needle, reason in KNOWN_REVERT_REASONS:
        if needle in message:
            return reason
    return message


def parse_event_id(receipt: LedgerReceipt, event_name: str, arg_name: str) -> int | None:
    """Return the id carried by the first ``event_name`` log, if any."""
    for entry in receipt.logs:
        if entry.get("event") != event_name:
            continue
        args = entry.get("args") or {}
        raw = args.get(arg_name)
        try:
            value = int(raw)
        except (TypeError, ValueError):
            logger.warning("Unparsable %s.%s in %s: %r", event_name, arg_name, receipt.tx_hash, raw)
            continue
        if value:
            return value
    return None


def derive_fallback_id(receipt: LedgerReceipt) -> int:
    """Derive an id from block number, transaction index and hash suffix.

    The decimal digits of block and index are concatenated with the last eight
    characters of the hash and read as hexadecimal. Collisions are possible.
    """
    digits = f"{receipt.block_number}{receipt.transaction_index}{receipt.tx_hash[-8:]}"
    return int(digits, 16) % FALLBACK_ID_MODULUS


def resolve_created_id(
    receipt: LedgerReceipt,
    event_name: str,
    arg_name: str,
    *,
    allow_fallback: bool,
) -> CreatedId:
    """Return the created id from the receipt, falling back to a derived id if allowed.

    Raises:
        LedgerEventMissingError: If the event is missing and fallback is disabled.
    """
    value = parse_event_id(receipt, event_name, arg_name)
    if value:
        return CreatedId(value=value, is_fallback=False)
    if not allow_fallback:
        raise LedgerEventMissingError(
            f"No {event_name} event in transaction {receipt.tx_hash}"
        )
    fallback = derive_fallback_id(receipt)
    logger.warning(
        "No %s event in %s; using derived id %d (block=%d index=%d)",
        event_name,
        receipt.tx_hash,
        fallback,
        receipt.block_number,
        receipt.transaction_index,
    )
    return CreatedId(value=fallback, is_fallback=True)


class LedgerClient:
    """HTTP client wrapper for the ledger gateway."""

    def __init__(
        self,
        config: LedgerConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_ledger_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    @property
    def configured(self) -> bool:
        return bool(self.config.base_url)

    @property
    def allow_fallback_ids(self) -> bool:
        return self.config.allow_fallback_ids

    async def _ensure_client(self) -> httpx.AsyncClient:
        if not self.configured:
            raise LedgerError("Ledger gateway URL is not configured")

        async with self._client_lock:
            if self._client is None:
                headers = {}
                if self.config.contract_address:
                    headers["X-Contract-Address"] = self.config.contract_address
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url or "",
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    headers=headers,
                    transport=self._transport,
                )
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        json_data: Mapping[str, Any] | None = None,
    ) -> httpx.Response:
        client = await self._ensure_client()
        try:
            return await client.request(method, path, json=json_data)
        except httpx.HTTPError as exc:
            raise LedgerError(f"Ledger request failed: {exc}") from exc

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise LedgerError("Ledger gateway returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise LedgerError("Ledger gateway returned an unexpected payload")
        return payload

    async def submit(
        self,
        function: str,
        args: Sequence[Any],
        *,
        value_wei: int = 0,
    ) -> LedgerResult:
        """Send a transaction, wait for its receipt and classify the outcome."""
        response = await self._request(
            "POST",
            "/transactions",
            {"function": function, "args": list(args), "value": str(value_wei)},
        )
        payload = self._json(response)

        error = payload.get("error")
        if error:
            return self._classify_error(function, error)
        if response.status_code not in (HTTP_OK, HTTP_ACCEPTED):
            raise LedgerError(f"Ledger responded with {response.status_code} for {function}")

        tx_hash = payload.get("tx_hash")
        if not isinstance(tx_hash, str):
            raise LedgerError(f"Ledger response for {function} carried no transaction hash")

        logger.info("Submitted %s as %s; waiting for confirmation", function, tx_hash)
        receipt = await self.wait_for_receipt(tx_hash)
        if receipt.succeeded:
            return LedgerSuccess(tx_hash=tx_hash, receipt=receipt)

        reason = await self.explain_failed_transaction(tx_hash)
        logger.warning("Transaction %s (%s) reverted: %s", tx_hash, function, reason)
        return LedgerReverted(reason=reason, tx_hash=tx_hash)

    @staticmethod
    def _classify_error(function: str, error: Mapping[str, Any]) -> LedgerResult:
        selector = str(error.get("selector") or "").lower()
        name = str(error.get("name") or "")
        if selector in ALREADY_DONE_SELECTORS:
            logger.info("%s reported already done (%s)", function, selector)
            return LedgerAlreadyDone(selector=selector, name=ALREADY_DONE_SELECTORS[selector])
        if name in ALREADY_DONE_SELECTORS.values():
            selector = next(s for s, n in ALREADY_DONE_SELECTORS.items() if n == name)
            return LedgerAlreadyDone(selector=selector, name=name)
        reason = explain_revert(error.get("message") or name or None)
        logger.warning("%s rejected before submission: %s", function, reason)
        return LedgerReverted(reason=reason)

    async def wait_for_receipt(self, tx_hash: str) -> LedgerReceipt:
        """Poll for a receipt until it is available or the client timeout elapses."""
        deadline = time.monotonic() + self.config.timeout_seconds
        while True:
            response = await self._request("GET", f"/transactions/{tx_hash}/receipt")
            if response.status_code == HTTP_OK:
                return _parse_receipt(tx_hash, self._json(response))
            if response.status_code not in (HTTP_ACCEPTED, HTTP_NOT_FOUND):
                raise LedgerError(
                    f"Unexpected ledger response ({response.status_code}) for receipt {tx_hash}"
                )
            if time.monotonic() >= deadline:
                raise LedgerError(f"Timed out waiting for receipt of {tx_hash}")
            await asyncio.sleep(self.config.receipt_poll_seconds)

    async def explain_failed_transaction(self, tx_hash: str) -> str:
        """Re-simulate a failed transaction and return a human reason."""
        try:
            response = await self._request("POST", "/simulate", {"tx_hash": tx_hash})
            payload = self._json(response)
        except LedgerError as exc:
            logger.warning("Could not simulate %s: %s", tx_hash, exc)
            return UNKNOWN_REVERT_REASON
        if payload.get("ok"):
            return UNKNOWN_REVERT_REASON
        return explain_revert(payload.get("error"))

    async def post_exists(self, post_id: int) -> bool:
        """Return True if the ledger holds a non-zero content hash for the post."""
        response = await self._request("GET", f"/posts/{post_id}")
        if response.status_code == HTTP_NOT_FOUND:
            return False
        if response.status_code != HTTP_OK:
            raise LedgerError(f"Unexpected ledger response ({response.status_code}) for post")
        content_hash = self._json(response).get("content_hash")
        return bool(content_hash) and content_hash != ZERO_HASH

    async def create_post(
        self,
        *,
        content_hash: str,
        preview_hash: str,
        content_ref: str,
        encrypted_visibility: str,
        visibility_proof: str,
        min_tip_amount: int,
    ) -> LedgerResult:
        return await self.submit(
            "createPost",
            [
                content_hash,
                preview_hash,
                content_ref,
                encrypted_visibility,
                visibility_proof,
                str(min_tip_amount),
            ],
        )

    async def reply_to_post(
        self,
        *,
        post_id: int,
        content_hash: str,
        preview_hash: str,
        content_ref: str,
        encrypted_visibility: str,
        visibility_proof: str,
        min_tip_amount: int,
        encrypted_unlock_price: str | None = None,
        unlock_price_proof: str | None = None,
    ) -> LedgerResult:
        args: list[Any] = [
            post_id,
            content_hash,
            preview_hash,
            content_ref,
            encrypted_visibility,
            visibility_proof,
            str(min_tip_amount),
        ]
        if encrypted_unlock_price is not None and unlock_price_proof is not None:
            args.extend([encrypted_unlock_price, unlock_price_proof])
        return await self.submit("replyToPost", args)

    async def register_user(self, encrypted_address: str, address_proof: str) -> LedgerResult:
        return await self.submit("registerUser", [encrypted_address, address_proof])

    async def tip_post(self, post_id: int, amount_wei: int) -> LedgerResult:
        return await self.submit("tipPost", [post_id], value_wei=amount_wei)

    async def tip_reply(self, post_id: int, reply_id: int, amount_wei: int) -> LedgerResult:
        return await self.submit("tipReply", [post_id, reply_id], value_wei=amount_wei)

    async def unlock_tippable_content(self, post_id: int, amount_wei: int) -> LedgerResult:
        return await self.submit("unlockTippableContent", [post_id], value_wei=amount_wei)

    async def claim_earnings(self, amount_wei: int) -> LedgerResult:
        return await self.submit("claimEarnings", [str(amount_wei)])

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


def _parse_receipt(tx_hash: str, payload: Mapping[str, Any]) -> LedgerReceipt:
    try:
        return LedgerReceipt(
            tx_hash=tx_hash,
            status=int(payload["status"]),
            block_number=int(payload["block_number"]),
            transaction_index=int(payload["transaction_index"]),
            gas_used=int(payload["gas_used"]) if payload.get("gas_used") is not None else None,
            logs=tuple(payload.get("logs") or ()),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise LedgerError(f"Malformed receipt for {tx_hash}: {exc}") from exc


class _LedgerClientSingleton:
    _instance: LedgerClient | None = None

    @classmethod
    def get_instance(cls) -> LedgerClient:
        if cls._instance is None:
            cls._instance = LedgerClient()
        return cls._instance


def get_ledger_client() -> LedgerClient:
    """Return a shared ledger client instance."""
    return _LedgerClientSingleton.get_instance()
