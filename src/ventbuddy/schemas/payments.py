# src/ventbuddy/schemas/payments.py
"""Payment Pydantic schemas."""

from pydantic import BaseModel, Field


class TipRequest(BaseModel):
    post_id: int
    amount_wei: int = Field(..., gt=0)


class ReplyTipRequest(TipRequest):
    reply_id: int


class UnlockRequest(TipRequest):
    """Schema for unlocking a tippable post."""


class ClaimRequest(BaseModel):
    amount_wei: int = Field(..., gt=0)


class PaymentResponse(BaseModel):
    tx_hash: str
    amount_wei: int
    content_id: int | None = None
    reply_id: int | None = None
    access_type: str | None = None
    recorded: bool = True


class EarningsItemResponse(BaseModel):
    content_id: int
    reply_id: int | None = None
    total_wei: int
    payments: int


class EarningsResponse(BaseModel):
    """Tips and unlocks paid for the caller's posts and replies."""

    total_wei: int
    tip_wei: int
    unlock_wei: int
    tip_count: int
    unlock_count: int
    items: list[EarningsItemResponse]
