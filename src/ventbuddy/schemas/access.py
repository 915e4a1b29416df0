# src/ventbuddy/schemas/access.py
"""Access and visibility Pydantic schemas."""

from enum import Enum

from pydantic import BaseModel, Field


class AccessReason(str, Enum):
    """Why a viewer can or cannot see an item."""

    PUBLIC = "public"
    AUTHOR = "author"
    UNLOCK = "unlock"
    NOT_CONNECTED = "not_connected"
    REQUIRES_PAYMENT = "requires_payment"


class AccessDecision(BaseModel):
    """Per-viewer access verdict; computed on demand, never stored."""

    has_access: bool
    reason: AccessReason


class VisibilityResponse(BaseModel):
    """Current visibility of a post or reply."""

    content_id: int
    reply_id: int | None = None
    visibility: int = Field(..., description="0 = public, 1 = tippable")
    event_type: str
    is_cached: bool
    has_event: bool


class AccessResponse(AccessDecision):
    """Access verdict with the inputs that produced it."""

    content_id: int
    reply_id: int | None = None
    visibility: int
    min_tip_amount: int | None = None
