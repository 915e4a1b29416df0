# src/ventbuddy/api/v1/endpoints/votes.py
"""Vote-related endpoints for the Ventbuddy API."""

from fastapi import APIRouter, HTTPException, status

from ventbuddy.schemas.engagement import (
    StatsBatchRequest,
    StatsResponse,
    ViewerVoteResponse,
    VoteResult,
    VoteToggle,
)

from ..dependencies import CurrentViewerDep, EngagementDep

router = APIRouter(prefix="/votes", tags=["votes"])


@router.post("/stats", response_model=list[StatsResponse])
async def get_many_stats(
    payload: StatsBatchRequest,
    engagement: EngagementDep,
) -> list[StatsResponse]:
    """Return stats for several posts, zero-filled where nothing is stored."""
    return list(engagement.get_many_stats(payload.content_ids).values())


@router.post("/{content_id}", response_model=VoteResult)
async def toggle_vote(
    content_id: int,
    vote_data: VoteToggle,
    viewer: CurrentViewerDep,
    engagement: EngagementDep,
) -> VoteResult:
    """Toggle an upvote or downvote; voting the same way twice removes the vote."""
    try:
        active = engagement.toggle_vote(
            content_id, viewer.encrypted_identity, vote_data.engagement_type
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return VoteResult(
        content_id=content_id,
        active=active,
        stats=engagement.get_stats(content_id),
    )


@router.get("/{content_id}/stats", response_model=StatsResponse)
async def get_stats(content_id: int, engagement: EngagementDep) -> StatsResponse:
    return engagement.get_stats(content_id)


@router.get("/{content_id}/my-vote", response_model=ViewerVoteResponse)
async def get_my_vote(
    content_id: int,
    viewer: CurrentViewerDep,
    engagement: EngagementDep,
) -> ViewerVoteResponse:
    """Get the caller's current vote on a post."""
    return ViewerVoteResponse(
        content_id=content_id,
        engagement_type=engagement.get_viewer_vote(content_id, viewer.encrypted_identity),
    )
