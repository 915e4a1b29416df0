# src/ventbuddy/services/__init__.py
"""Business logic services for the Ventbuddy application."""

from .access import AccessResolver, Viewer
from .engagement import EngagementAggregator
from .feed import FeedService
from .payments import PaymentService
from .pipeline import ContentCreationPipeline
from .realtime import ChangeFeedWorker, RealtimeInvalidationBus
from .registration import RegistrationService
from .visibility import VisibilityCache, VisibilityService

__all__ = [
    "AccessResolver",
    "ChangeFeedWorker",
    "ContentCreationPipeline",
    "EngagementAggregator",
    "FeedService",
    "PaymentService",
    "RealtimeInvalidationBus",
    "RegistrationService",
    "Viewer",
    "VisibilityCache",
    "VisibilityService",
]
