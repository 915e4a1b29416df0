# src/ventbuddy/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    payments_router,
    posts_router,
    system_router,
    users_router,
    visibility_router,
    votes_router,
)

__all__ = [
    "payments_router",
    "posts_router",
    "system_router",
    "users_router",
    "visibility_router",
    "votes_router",
]
