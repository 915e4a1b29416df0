# src/ventbuddy/api/v1/endpoints/payments.py
"""Tip, unlock and earnings endpoints."""

from fastapi import APIRouter, status

from ventbuddy.schemas.payments import (
    ClaimRequest,
    EarningsItemResponse,
    EarningsResponse,
    PaymentResponse,
    ReplyTipRequest,
    TipRequest,
    UnlockRequest,
)
from ventbuddy.services.errors import VentbuddyError
from ventbuddy.services.payments import PaymentReceipt

from ..dependencies import CurrentViewerDep, PaymentServiceDep, http_error_from

router = APIRouter(prefix="/payments", tags=["payments"])


def _response(receipt: PaymentReceipt) -> PaymentResponse:
    return PaymentResponse(
        tx_hash=receipt.tx_hash,
        amount_wei=receipt.amount_wei,
        content_id=receipt.content_id,
        reply_id=receipt.reply_id,
        access_type=receipt.access_type,
        recorded=receipt.recorded,
    )


@router.post("/tip", status_code=status.HTTP_201_CREATED, response_model=PaymentResponse)
async def tip_post(
    payload: TipRequest,
    viewer: CurrentViewerDep,
    payments: PaymentServiceDep,
) -> PaymentResponse:
    try:
        receipt = await payments.tip_post(viewer, payload.post_id, payload.amount_wei)
    except VentbuddyError as exc:
        raise http_error_from(exc) from exc
    return _response(receipt)


@router.post("/tip-reply", status_code=status.HTTP_201_CREATED, response_model=PaymentResponse)
async def tip_reply(
    payload: ReplyTipRequest,
    viewer: CurrentViewerDep,
    payments: PaymentServiceDep,
) -> PaymentResponse:
    try:
        receipt = await payments.tip_reply(
            viewer, payload.post_id, payload.reply_id, payload.amount_wei
        )
    except VentbuddyError as exc:
        raise http_error_from(exc) from exc
    return _response(receipt)


@router.post("/unlock", status_code=status.HTTP_201_CREATED, response_model=PaymentResponse)
async def unlock_content(
    payload: UnlockRequest,
    viewer: CurrentViewerDep,
    payments: PaymentServiceDep,
) -> PaymentResponse:
    """Pay the unlock price of a tippable post for the caller."""
    try:
        receipt = await payments.unlock_content(viewer, payload.post_id, payload.amount_wei)
    except VentbuddyError as exc:
        raise http_error_from(exc) from exc
    return _response(receipt)


@router.post("/claim", response_model=PaymentResponse)
async def claim_earnings(
    payload: ClaimRequest,
    viewer: CurrentViewerDep,
    payments: PaymentServiceDep,
) -> PaymentResponse:
    try:
        receipt = await payments.claim_earnings(viewer, payload.amount_wei)
    except VentbuddyError as exc:
        raise http_error_from(exc) from exc
    return _response(receipt)


@router.get("/earnings", response_model=EarningsResponse)
async def get_earnings(viewer: CurrentViewerDep, payments: PaymentServiceDep) -> EarningsResponse:
    """Summarize tips and unlocks paid for the caller's content."""
    summary = payments.earnings_summary(viewer)
    return EarningsResponse(
        total_wei=summary.total_wei,
        tip_wei=summary.tip_wei,
        unlock_wei=summary.unlock_wei,
        tip_count=summary.tip_count,
        unlock_count=summary.unlock_count,
        items=[
            EarningsItemResponse(
                content_id=item.content_id,
                reply_id=item.reply_id,
                total_wei=item.total_wei,
                payments=item.payments,
            )
            for item in summary.items
        ],
    )
