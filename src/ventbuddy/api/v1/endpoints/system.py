"""System endpoints: configuration, readiness and maintenance."""

from __future__ import annotations

from fastapi import APIRouter

from ventbuddy.core.settings import settings

from ..dependencies import CacheDep, CurrentViewerDep, EncryptionDep, EngagementDep, LedgerDep

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/config")
async def get_public_config() -> dict[str, object]:
    """Return a sanitized snapshot of public runtime configuration.

    Excludes secrets and connection strings.
    """
    return {
        "app": {
            "name": settings.app_name,
            "version": settings.app_version,
            "debug": settings.debug,
        },
        "content": {
            "preview_length": settings.preview_length,
            "max_content_length": settings.max_content_length,
        },
        "visibility": {
            "cache_ttl_seconds": settings.visibility_cache_ttl_seconds,
            "change_feed_enabled": settings.change_feed_enabled,
        },
        "ledger": {
            "configured": bool(settings.ledger_gateway_url),
            "contract_address": settings.ledger_contract_address,
            "allow_fallback_ids": settings.ledger_allow_fallback_ids,
        },
    }


@router.get("/readiness")
async def readiness(
    encryption: EncryptionDep,
    ledger: LedgerDep,
    cache: CacheDep,
) -> dict[str, object]:
    """Report whether content can be created right now."""
    encryption_ready = await encryption.is_ready()
    return {
        "encryption_ready": encryption_ready,
        "ledger_configured": ledger.configured,
        "can_create_content": encryption_ready and ledger.configured,
        "visibility_cache": {"size": len(cache), "ttl_seconds": cache.ttl_seconds},
    }


@router.post("/repair-stats")
async def repair_stats(viewer: CurrentViewerDep, engagement: EngagementDep) -> dict[str, int]:
    """Recompute vote counters for every post with engagement."""
    return {"repaired": engagement.recompute_all_stats()}
