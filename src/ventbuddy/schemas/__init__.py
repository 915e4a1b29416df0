"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .access import AccessDecision, AccessReason, AccessResponse, VisibilityResponse
from .content import ContentView, CreationResponse, FeedItem, PostCreate, PostDetail, ReplyCreate
from .engagement import StatsBatchRequest, StatsResponse, ViewerVoteResponse, VoteResult, VoteToggle
from .payments import ClaimRequest, PaymentResponse, ReplyTipRequest, TipRequest, UnlockRequest
from .users import RegisterRequest, RegisterResponse, SessionResponse

__all__ = [
    "AccessDecision", "AccessReason", "AccessResponse", "VisibilityResponse",
    "ContentView", "CreationResponse", "FeedItem", "PostCreate", "PostDetail", "ReplyCreate",
    "StatsBatchRequest", "StatsResponse", "ViewerVoteResponse", "VoteResult", "VoteToggle",
    "ClaimRequest", "PaymentResponse", "ReplyTipRequest", "TipRequest", "UnlockRequest",
    "RegisterRequest", "RegisterResponse", "SessionResponse",
]
