# src/ventbuddy/models/__init__.py
"""SQLAlchemy models for the Ventbuddy application."""

from .access import AccessLog, UserSession
from .content import Post, Reply
from .engagement import Engagement, PostStats
from .profile import UserProfile
from .visibility import VisibilityEvent

__all__ = [
    "AccessLog", "UserSession",
    "Post", "Reply",
    "Engagement", "PostStats",
    "UserProfile",
    "VisibilityEvent",
]
