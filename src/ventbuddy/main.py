# src/ventbuddy/main.py
"""Main entry point for the Ventbuddy application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from ventbuddy.api.v1 import (
    payments_router,
    posts_router,
    system_router,
    users_router,
    visibility_router,
    votes_router,
)
from ventbuddy.core.settings import settings
from ventbuddy.services.encryption import get_encryption_client
from ventbuddy.services.ledger import get_ledger_client
from ventbuddy.services.realtime import ChangeFeedWorker, RealtimeInvalidationBus
from ventbuddy.services.visibility import VisibilityCache

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Ventbuddy API",
    description="Anonymous posting with tip-gated visibility",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(posts_router, prefix="/api/v1")
app.include_router(votes_router, prefix="/api/v1")
app.include_router(visibility_router, prefix="/api/v1")
app.include_router(payments_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    logging.basicConfig(level=settings.log_level.upper())
    cache = VisibilityCache()
    app.state.visibility_cache = cache
    app.state.invalidation_bus = RealtimeInvalidationBus(cache)
    if settings.change_feed_enabled:
        worker = ChangeFeedWorker(app.state.invalidation_bus)
        await worker.start()
        app.state.change_feed_worker = worker
        logger.info("Visibility change feed started")
    else:
        app.state.change_feed_worker = None


@app.on_event("shutdown")
async def on_shutdown() -> None:
    worker: ChangeFeedWorker | None = getattr(app.state, "change_feed_worker", None)
    if worker:
        await worker.stop()
    await get_encryption_client().close()
    await get_ledger_client().close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": "Ventbuddy API",
        "version": settings.app_version,
        "description": "Anonymous posting with tip-gated visibility",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("ventbuddy.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
