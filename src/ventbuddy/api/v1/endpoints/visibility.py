# src/ventbuddy/api/v1/endpoints/visibility.py
"""Visibility lookup, access resolution and cache administration endpoints."""

from typing import Any

from fastapi import APIRouter, HTTPException, status

from ventbuddy.schemas.access import AccessResponse, VisibilityResponse
from ventbuddy.services.errors import VentbuddyError

from ..dependencies import (
    AccessResolverDep,
    CacheDep,
    CurrentViewerDep,
    OptionalViewerDep,
    VisibilityServiceDep,
    http_error_from,
)

router = APIRouter(prefix="/visibility", tags=["visibility"])


@router.get("/cache/stats")
async def get_cache_stats(cache: CacheDep) -> dict[str, Any]:
    """Return size and hit counters of this instance's visibility cache."""
    return cache.stats()


@router.delete("/cache", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cache(viewer: CurrentViewerDep, cache: CacheDep) -> None:
    """Drop every cached visibility. Requires a signed-in caller."""
    cache.clear()


@router.delete("/cache/{content_id}", status_code=status.HTTP_204_NO_CONTENT)
async def invalidate_cache_entry(
    content_id: int,
    viewer: CurrentViewerDep,
    cache: CacheDep,
    reply_id: int | None = None,
) -> None:
    cache.invalidate(content_id, reply_id)


@router.get("/{content_id}", response_model=VisibilityResponse)
async def get_visibility(
    content_id: int,
    visibility: VisibilityServiceDep,
    reply_id: int | None = None,
) -> VisibilityResponse:
    """Return the current visibility of a post (or of one of its replies)."""
    lookup = visibility.get_visibility(content_id, reply_id)
    return VisibilityResponse(
        content_id=content_id,
        reply_id=reply_id,
        visibility=lookup.visibility,
        event_type=lookup.event_type,
        is_cached=lookup.is_cached,
        has_event=lookup.has_event,
    )


@router.get("/{content_id}/access", response_model=AccessResponse)
async def resolve_access(
    content_id: int,
    viewer: OptionalViewerDep,
    resolver: AccessResolverDep,
    reply_id: int | None = None,
) -> AccessResponse:
    """Decide whether the caller may read the item."""
    if reply_id is None:
        item = resolver.content.get_post(content_id)
    else:
        item = resolver.content.get_reply(content_id, reply_id)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Content not found")

    try:
        decision = resolver.resolve(item, viewer)
    except VentbuddyError as exc:
        raise http_error_from(exc) from exc

    lookup = resolver.visibility.get_visibility(content_id, reply_id)
    return AccessResponse(
        content_id=content_id,
        reply_id=reply_id,
        visibility=lookup.visibility,
        min_tip_amount=item.min_tip_amount,
        has_access=decision.has_access,
        reason=decision.reason,
    )


@router.get("/{content_id}/debug")
async def debug_visibility(
    content_id: int,
    visibility: VisibilityServiceDep,
    reply_id: int | None = None,
) -> dict[str, Any]:
    """Return the event history and cache state of an item."""
    return visibility.debug(content_id, reply_id)

