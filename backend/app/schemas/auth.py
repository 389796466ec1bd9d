"""Federated login Pydantic schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FederatedLoginRequest(BaseModel):
    """Body of ``POST /api/v1/auth/{provider}``."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(..., alias="accessToken", min_length=1, max_length=4096)
    user_id: Optional[str] = Field(None, alias="userId", max_length=255)
    email: Optional[str] = Field(None, max_length=320)

    @field_validator("access_token")
    @classmethod
    def token_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("accessToken must not be blank")
        return value.strip()

    @field_validator("user_id", "email")
    @classmethod
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None


class SessionCredentialResponse(BaseModel):
    """Signed session credential."""

    model_config = ConfigDict(populate_by_name=True)

    token: str
    token_type: str = Field("bearer", alias="tokenType")
    expires_at: datetime = Field(..., alias="expiresAt")


class PublicProfile(BaseModel):
    """Public profile returned with a credential."""

    model_config = ConfigDict(populate_by_name=True)

    local_id: str = Field(..., alias="localId")
    display_name: str = Field(..., alias="displayName")
    photo_url: Optional[str] = Field(None, alias="photoURL")


class FederatedLoginResponse(BaseModel):
    """Successful federated login."""

    credential: SessionCredentialResponse
    profile: PublicProfile


class ErrorResponse(BaseModel):
    """Error body returned by the auth endpoints."""

    error: str
