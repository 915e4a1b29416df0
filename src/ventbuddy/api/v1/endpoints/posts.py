# src/ventbuddy/api/v1/endpoints/posts.py
"""Post, reply and feed endpoints for the Ventbuddy API."""

from typing import Annotated

from fastapi import APIRouter, Query, status

from ventbuddy.schemas.content import (
    ContentView,
    CreationResponse,
    FeedItem,
    PostCreate,
    PostDetail,
    ReplyCreate,
)
from ventbuddy.services.errors import VentbuddyError
from ventbuddy.services.pipeline import CreationResult

from ..dependencies import (
    CurrentViewerDep,
    FeedServiceDep,
    OptionalViewerDep,
    PipelineDep,
    http_error_from,
)

router = APIRouter(prefix="/posts", tags=["posts"])


def _creation_response(result: CreationResult) -> CreationResponse:
    return CreationResponse(
        ledger_id=result.ledger_id,
        post_id=result.post_id,
        tx_hash=result.tx_hash,
        content_hash=result.content_hash,
        id_is_fallback=result.id_is_fallback,
        record_id=result.record_id,
        visibility_event_id=result.visibility_event_id,
        warnings=result.warnings,
    )


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=CreationResponse)
async def create_post(
    payload: PostCreate,
    viewer: CurrentViewerDep,
    pipeline: PipelineDep,
) -> CreationResponse:
    """Encrypt, submit and store a new vent."""
    try:
        result = await pipeline.create_post(
            viewer,
            payload.content,
            visibility=payload.visibility,
            min_tip_amount=payload.min_tip_amount,
        )
    except VentbuddyError as exc:
        raise http_error_from(exc) from exc
    return _creation_response(result)


@router.get("/feed", response_model=list[FeedItem])
async def get_feed(
    viewer: OptionalViewerDep,
    feed: FeedServiceDep,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
) -> list[FeedItem]:
    """Return recent posts ranked by engagement, with access resolved for the caller."""
    return feed.build_feed(viewer, limit)


@router.get("/{ledger_id}", response_model=PostDetail)
async def get_post(
    ledger_id: int,
    viewer: OptionalViewerDep,
    feed: FeedServiceDep,
) -> PostDetail:
    try:
        return feed.get_post(ledger_id, viewer)
    except VentbuddyError as exc:
        raise http_error_from(exc) from exc


@router.get("/{ledger_id}/replies", response_model=list[ContentView])
async def list_replies(
    ledger_id: int,
    viewer: OptionalViewerDep,
    feed: FeedServiceDep,
) -> list[ContentView]:
    return feed.list_replies(ledger_id, viewer)


@router.post(
    "/{ledger_id}/replies",
    status_code=status.HTTP_201_CREATED,
    response_model=CreationResponse,
)
async def create_reply(
    ledger_id: int,
    payload: ReplyCreate,
    viewer: CurrentViewerDep,
    pipeline: PipelineDep,
) -> CreationResponse:
    """Reply to a post; the reply may carry its own unlock price."""
    try:
        result = await pipeline.create_reply(
            viewer,
            ledger_id,
            payload.content,
            visibility=payload.visibility,
            unlock_price=payload.unlock_price,
        )
    except VentbuddyError as exc:
        raise http_error_from(exc) from exc
    return _creation_response(result)
