# src/ventbuddy/schemas/content.py
"""Post, reply and feed Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from .access import AccessDecision


class PostCreate(BaseModel):
    """Schema for creating a new post."""

    content: str = Field(..., min_length=1, max_length=5000)
    visibility: int = Field(..., ge=0, le=1, description="0 = public, 1 = tippable")
    min_tip_amount: int = Field(0, ge=0, description="Threshold in wei; 0 means free")


class ReplyCreate(BaseModel):
    """Schema for replying to a post."""

    content: str = Field(..., min_length=1, max_length=5000)
    visibility: int = Field(0, ge=0, le=1)
    unlock_price: int = Field(0, ge=0, description="Unlock price in wei")


class CreationResponse(BaseModel):
    ledger_id: int
    post_id: int | None = None
    tx_hash: str
    content_hash: str
    id_is_fallback: bool
    record_id: int | None = None
    visibility_event_id: int | None = None
    warnings: list[str] = Field(default_factory=list)


class ContentView(BaseModel):
    """A post or reply as seen by one viewer; ``content`` is None while locked."""

    ledger_id: int
    reply_id: int | None = None
    content_hash: str
    preview: str | None = None
    content: str | None = None
    min_tip_amount: int | None = None
    visibility: int
    access: AccessDecision
    created_at: datetime


class FeedItem(ContentView):
    upvote_count: int = 0
    downvote_count: int = 0
    reply_count: int = 0
    score: int = 0


class PostDetail(FeedItem):
    replies: list[ContentView] = Field(default_factory=list)
