"""Shared API dependencies for authentication, services and error mapping."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ventbuddy.core.security import JWTError, decode_access_token
from ventbuddy.db.session import get_db
from ventbuddy.repositories.access_repo import SessionRepository
from ventbuddy.services.access import AccessResolver, Viewer
from ventbuddy.services.encryption import EncryptionClient, get_encryption_client
from ventbuddy.services.engagement import EngagementAggregator
from ventbuddy.services.errors import (
    AmbiguousAlreadyDoneError,
    ContentNotFoundError,
    ContentValidationError,
    EncryptionError,
    LedgerError,
    NotReadyError,
    NotRegisteredError,
    TransactionRevertedError,
    UsernameTakenError,
    VentbuddyError,
)
from ventbuddy.services.feed import FeedService
from ventbuddy.services.ledger import LedgerClient, get_ledger_client
from ventbuddy.services.payments import PaymentService
from ventbuddy.services.pipeline import ContentCreationPipeline
from ventbuddy.services.profiles import ProfileService
from ventbuddy.services.realtime import RealtimeInvalidationBus
from ventbuddy.services.registration import RegistrationService
from ventbuddy.services.visibility import VisibilityCache, VisibilityService

# Viewers may browse without a token; gated endpoints require one.
bearer_scheme = HTTPBearer(auto_error=False)

SessionDep = Annotated[Session, Depends(get_db)]


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def get_optional_viewer(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
) -> Viewer | None:
    """Return the viewer bound to the bearer token, or None without a token.

    Raises:
        HTTPException: 401 if a token is present but invalid, 403 if its wallet has no session.
    """
    if credentials is None:
        return None
    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError as err:
        raise _credentials_error() from err

    subject = payload.get("sub")
    if not isinstance(subject, str):
        raise _credentials_error()

    sessions = SessionRepository(db)
    record = sessions.get_by_wallet(subject)
    if record is None:
        raise http_error_from(NotRegisteredError(f"Wallet {subject} is not registered"))
    sessions.touch(record)
    db.commit()
    return Viewer(wallet_address=record.wallet_address, encrypted_identity=record.encrypted_address)


OptionalViewerDep = Annotated[Viewer | None, Depends(get_optional_viewer)]


def get_current_viewer(viewer: OptionalViewerDep) -> Viewer:
    """Require an authenticated viewer."""
    if viewer is None:
        raise _credentials_error("Not authenticated")
    return viewer


CurrentViewerDep = Annotated[Viewer, Depends(get_current_viewer)]


def get_visibility_cache(request: Request) -> VisibilityCache:
    """Return the cache owned by this application instance."""
    return request.app.state.visibility_cache


def get_invalidation_bus(request: Request) -> RealtimeInvalidationBus:
    return request.app.state.invalidation_bus


def get_encryption_client_dep() -> EncryptionClient:
    """Return the shared encryption service client."""
    return get_encryption_client()


def get_ledger_client_dep() -> LedgerClient:
    """Return the shared ledger gateway client."""
    return get_ledger_client()


CacheDep = Annotated[VisibilityCache, Depends(get_visibility_cache)]
BusDep = Annotated[RealtimeInvalidationBus, Depends(get_invalidation_bus)]
EncryptionDep = Annotated[EncryptionClient, Depends(get_encryption_client_dep)]
LedgerDep = Annotated[LedgerClient, Depends(get_ledger_client_dep)]


def get_visibility_service(db: SessionDep, cache: CacheDep, bus: BusDep) -> VisibilityService:
    return VisibilityService(db, cache, bus)


VisibilityServiceDep = Annotated[VisibilityService, Depends(get_visibility_service)]


def get_access_resolver(db: SessionDep, visibility: VisibilityServiceDep) -> AccessResolver:
    return AccessResolver(db, visibility)


def get_engagement(db: SessionDep) -> EngagementAggregator:
    return EngagementAggregator(db)


AccessResolverDep = Annotated[AccessResolver, Depends(get_access_resolver)]
EngagementDep = Annotated[EngagementAggregator, Depends(get_engagement)]


def get_feed_service(
    db: SessionDep, resolver: AccessResolverDep, engagement: EngagementDep
) -> FeedService:
    return FeedService(db, resolver=resolver, engagement=engagement)


def get_pipeline(
    db: SessionDep,
    encryption: EncryptionDep,
    ledger: LedgerDep,
    visibility: VisibilityServiceDep,
    engagement: EngagementDep,
) -> ContentCreationPipeline:
    return ContentCreationPipeline(
        db,
        encryption=encryption,
        ledger=ledger,
        visibility=visibility,
        engagement=engagement,
    )


def get_payment_service(
    db: SessionDep, ledger: LedgerDep, visibility: VisibilityServiceDep
) -> PaymentService:
    return PaymentService(db, ledger=ledger, visibility=visibility)


def get_registration_service(
    db: SessionDep, encryption: EncryptionDep, ledger: LedgerDep
) -> RegistrationService:
    return RegistrationService(db, encryption=encryption, ledger=ledger)


def get_profile_service(db: SessionDep) -> ProfileService:
    return ProfileService(db)


FeedServiceDep = Annotated[FeedService, Depends(get_feed_service)]
PipelineDep = Annotated[ContentCreationPipeline, Depends(get_pipeline)]
PaymentServiceDep = Annotated[PaymentService, Depends(get_payment_service)]
RegistrationServiceDep = Annotated[RegistrationService, Depends(get_registration_service)]
ProfileServiceDep = Annotated[ProfileService, Depends(get_profile_service)]


def http_error_from(exc: VentbuddyError) -> HTTPException:
    """Translate a service error into the HTTP error returned to clients."""
    if isinstance(exc, ContentNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ContentValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, NotRegisteredError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, NotReadyError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    if isinstance(
        exc, TransactionRevertedError | AmbiguousAlreadyDoneError | UsernameTakenError
    ):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, LedgerError | EncryptionError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
