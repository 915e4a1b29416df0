# src/ventbuddy/schemas/users.py
"""Registration, session and profile Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RegisterRequest(BaseModel):
    wallet_address: str = Field(..., pattern=r"^0x[0-9a-fA-F]{40}$")


class RegisterResponse(BaseModel):
    wallet_address: str
    already_registered: bool
    session_stored: bool
    access_token: str
    token_type: str = "bearer"
    tx_hash: str | None = None


class SessionResponse(BaseModel):
    """The caller's wallet session; the encrypted identity is never returned."""

    model_config = ConfigDict(from_attributes=True)

    wallet_address: str
    created_at: datetime
    last_active: datetime


class ProfileUpdateRequest(BaseModel):
    """Fields to change on the caller's profile; omitted fields stay as they are."""

    username: str | None = Field(None, pattern=r"^[A-Za-z0-9_]{3,30}$")
    display_name: str | None = Field(None, min_length=1, max_length=100)
    bio: str | None = Field(None, max_length=500)
    is_username_public: bool | None = None
    is_profile_public: bool | None = None

    @field_validator("is_username_public", "is_profile_public")
    @classmethod
    def flags_not_null(cls, v: bool | None) -> bool:
        if v is None:
            raise ValueError("Privacy flags cannot be null")
        return v


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    wallet_address: str
    username: str | None
    display_name: str | None
    bio: str | None
    is_username_public: bool
    is_profile_public: bool
    updated_at: datetime


class UsernameAvailability(BaseModel):
    username: str
    available: bool
