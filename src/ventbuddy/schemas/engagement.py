# src/ventbuddy/schemas/engagement.py
"""Vote and statistics Pydantic schemas."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

EngagementType = Literal["upvote", "downvote"]


class VoteToggle(BaseModel):
    """Schema for toggling a vote on a post."""

    engagement_type: EngagementType = Field(..., description="upvote or downvote")


class StatsResponse(BaseModel):
    """Engagement counters for a post; zero-filled when nothing is stored."""

    model_config = ConfigDict(from_attributes=True)

    content_id: int
    upvote_count: int = 0
    downvote_count: int = 0
    reply_count: int = 0


class VoteResult(BaseModel):
    """Outcome of a toggle: whether the vote is now present, plus fresh counts."""

    content_id: int
    active: bool
    stats: StatsResponse


class StatsBatchRequest(BaseModel):
    content_ids: list[int] = Field(..., max_length=500)


class ViewerVoteResponse(BaseModel):
    content_id: int
    engagement_type: EngagementType | None = None
