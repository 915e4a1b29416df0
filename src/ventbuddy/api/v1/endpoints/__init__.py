# src/ventbuddy/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .payments import router as payments_router
from .posts import router as posts_router
from .system import router as system_router
from .users import router as users_router
from .visibility import router as visibility_router
from .votes import router as votes_router

__all__ = [
    "payments_router",
    "posts_router",
    "system_router",
    "users_router",
    "visibility_router",
    "votes_router",
]
