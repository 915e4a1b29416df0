"""Client for the external encryption service.

The service turns plain numbers and addresses into opaque encrypted handles
plus input proofs that the ledger accepts. Its readiness must be checked
before anything is submitted to the ledger.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from ventbuddy.core.settings import settings
from ventbuddy.services.errors import EncryptionError, NotReadyError

logger = logging.getLogger(__name__)

HTTP_OK = 200


@dataclass(frozen=True)
class EncryptionConfig:
    """Immutable configuration for the encryption service client."""

    base_url: str | None
    timeout_seconds: float


@dataclass(frozen=True)
class EncryptionStatus:
    initialized: bool
    network_ok: bool

    @property
    def ready(self) -> bool:
        return self.initialized and self.network_ok


@dataclass(frozen=True)
class EncryptedInput:
    """Opaque encrypted value and the proof the ledger needs to accept it."""

    handle: str
    proof: str


def load_encryption_config() -> EncryptionConfig:
    """Build configuration object from global settings."""
    return EncryptionConfig(
        base_url=settings.encryption_service_url,
        timeout_seconds=float(settings.encryption_http_timeout_seconds),
    )


class EncryptionClient:
    """HTTP client wrapper for the encryption service."""

    def __init__(
        self,
        config: EncryptionConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_encryption_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    @property
    def configured(self) -> bool:
        return bool(self.config.base_url)

    async def _ensure_client(self) -> httpx.AsyncClient:
        if not self.configured:
            raise NotReadyError("Encryption service URL is not configured")

        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url or "",
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    async def _request(
        self, method: str, path: str, json_data: Mapping[str, Any] | None = None
    ) -> dict[str, Any]:
        client = await self._ensure_client()
        try:
            response = await client.request(method, path, json=json_data)
        except httpx.HTTPError as exc:
            raise EncryptionError(f"Encryption service request failed: {exc}") from exc

        if response.status_code != HTTP_OK:
            raise EncryptionError(
                f"Encryption service responded with {response.status_code} for {path}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise EncryptionError("Encryption service returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise EncryptionError("Encryption service returned an unexpected payload")
        return payload

    async def status(self) -> EncryptionStatus:
        payload = await self._request("GET", "/status")
        return EncryptionStatus(
            initialized=bool(payload.get("initialized")),
            network_ok=bool(payload.get("network_ok")),
        )

    async def is_ready(self) -> bool:
        """Return True when the service is initialized and can reach the network."""
        try:
            return (await self.status()).ready
        except (EncryptionError, NotReadyError) as exc:
            logger.warning("Encryption service not ready: %s", exc)
            return False

    async def ensure_ready(self) -> None:
        """Raise NotReadyError unless the service can encrypt right now."""
        if not await self.is_ready():
            raise NotReadyError("Encryption service is not ready; try again shortly")

    async def encrypt_number(self, value: int, user_address: str) -> EncryptedInput:
        """Encrypt an unsigned integer for use by ``user_address`` on the ledger."""
        if value < 0:
            raise EncryptionError("Only unsigned values can be encrypted")
        payload = await self._request(
            "POST",
            "/encrypt/number",
            {"value": value, "user": user_address},
        )
        return _parse_encrypted(payload, "encrypted_value")

    async def encrypt_address(self, address: str, user_address: str) -> EncryptedInput:
        payload = await self._request(
            "POST",
            "/encrypt/address",
            {"address": address, "user": user_address},
        )
        return _parse_encrypted(payload, "encrypted_address")

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


def _parse_encrypted(payload: Mapping[str, Any], field: str) -> EncryptedInput:
    handle = payload.get(field)
    proof = payload.get("proof")
    if not isinstance(handle, str) or not isinstance(proof, str):
        raise EncryptionError(f"Encryption service response missing {field} or proof")
    return EncryptedInput(handle=handle, proof=proof)


class _EncryptionClientSingleton:
    _instance: EncryptionClient | None = None

    @classmethod
    def get_instance(cls) -> EncryptionClient:
        if cls._instance is None:
            cls._instance = EncryptionClient()
        return cls._instance


def get_encryption_client() -> EncryptionClient:
    """Return a shared encryption client instance."""
    return _EncryptionClientSingleton.get_instance()
