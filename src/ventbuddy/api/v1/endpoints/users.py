# src/ventbuddy/api/v1/endpoints/users.py
"""Wallet registration, session and profile endpoints."""

from fastapi import APIRouter, HTTPException, Query, status

from ventbuddy.repositories.access_repo import SessionRepository
from ventbuddy.schemas.users import (
    ProfileResponse,
    ProfileUpdateRequest,
    RegisterRequest,
    RegisterResponse,
    SessionResponse,
    UsernameAvailability,
)
from ventbuddy.services.errors import VentbuddyError

from ..dependencies import (
    CurrentViewerDep,
    OptionalViewerDep,
    ProfileServiceDep,
    RegistrationServiceDep,
    SessionDep,
    http_error_from,
)

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/register", response_model=RegisterResponse)
async def register(
    payload: RegisterRequest,
    registration: RegistrationServiceDep,
) -> RegisterResponse:
    """Register a wallet; registering an already known wallet also succeeds."""
    try:
        result = await registration.register(payload.wallet_address)
    except VentbuddyError as exc:
        raise http_error_from(exc) from exc
    return RegisterResponse(
        wallet_address=result.wallet_address,
        already_registered=result.already_registered,
        session_stored=result.session_stored,
        access_token=result.access_token,
        tx_hash=result.tx_hash,
    )


@router.get("/me", response_model=SessionResponse)
async def get_me(viewer: CurrentViewerDep, db: SessionDep) -> SessionResponse:
    record = SessionRepository(db).get_by_wallet(viewer.wallet_address)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return SessionResponse.model_validate(record)


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(viewer: CurrentViewerDep, profiles: ProfileServiceDep) -> ProfileResponse:
    profile = profiles.get(viewer)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return ProfileResponse.model_validate(profile)


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    payload: ProfileUpdateRequest,
    viewer: CurrentViewerDep,
    profiles: ProfileServiceDep,
) -> ProfileResponse:
    """Create or update the caller's profile with the fields present in the body."""
    try:
        profile = profiles.save(viewer, payload.model_dump(exclude_unset=True))
    except VentbuddyError as exc:
        raise http_error_from(exc) from exc
    return ProfileResponse.model_validate(profile)


@router.get("/username-available", response_model=UsernameAvailability)
async def username_available(
    viewer: OptionalViewerDep,
    profiles: ProfileServiceDep,
    username: str = Query(..., max_length=64),
) -> UsernameAvailability:
    """Report whether a username is free; the caller's own username counts as free."""
    return UsernameAvailability(
        username=username,
        available=profiles.is_username_available(username, viewer),
    )
