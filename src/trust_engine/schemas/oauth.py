from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from trust_engine.schemas.common import ensure_utc, normalize_scopes, validate_absolute_url

GrantType = Literal["authorization_code", "refresh_token"]
TokenTypeHint = Literal["access_token", "refresh_token"]


def _redirect_uris(v: list[str]) -> list[str]:
    if not v:
        raise ValueError("At least one redirect URI is required")
    cleaned: list[str] = []
    for uri in v:
        uri = validate_absolute_url(uri)
        if uri not in cleaned:
            cleaned.append(uri)
    return cleaned


class CreateOAuthClientRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    redirect_uris: list[str]
    scopes: list[str] = Field(default_factory=list)

    @field_validator("redirect_uris")
    @classmethod
    def validate_redirect_uris(cls, v: list[str]) -> list[str]:
        return _redirect_uris(v)

    @field_validator("scopes")
    @classmethod
    def validate_scopes(cls, v: list[str]) -> list[str]:
        return normalize_scopes(v)


class UpdateOAuthClientRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    redirect_uris: list[str] | None = None
    scopes: list[str] | None = None
    is_active: bool | None = None

    @field_validator("redirect_uris")
    @classmethod
    def validate_redirect_uris(cls, v: list[str] | None) -> list[str] | None:
        return _redirect_uris(v) if v is not None else v

    @field_validator("scopes")
    @classmethod
    def validate_scopes(cls, v: list[str] | None) -> list[str] | None:
        return normalize_scopes(v) if v is not None else v


class OAuthClientItem(BaseModel):
    """A registered client as shown to its owner. The secret hash never leaves the store."""

    client_id: str
    name: str
    description: str | None = None
    redirect_uris: list[str]
    scopes: list[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def validate_timestamps(cls, v: datetime) -> datetime:
        return ensure_utc(v)  # type: ignore[return-value]

    class Config:
        from_attributes = True


class CreatedOAuthClient(OAuthClientItem):
    # Shown once, at registration
    client_secret: str


class RevokedTokens(BaseModel):
    revoked_access_tokens: int


# --- Authorization step ---


class PendingGrant(BaseModel):
    """What the consent screen shows before the user approves."""

    client_id: str
    client_name: str
    client_description: str | None = None
    redirect_uri: str
    scopes: list[str]
    state: str | None = None


class AuthorizeDecision(BaseModel):
    client_id: str
    redirect_uri: str
    scope: str = ""
    state: str | None = None
    approved: bool


class AuthorizationCodeResult(BaseModel):
    code: str
    expires_at: datetime


class AuthorizeRedirect(BaseModel):
    success: bool = True
    redirect_url: str


# --- Token endpoint ---


class TokenRequest(BaseModel):
    grant_type: GrantType
    code: str | None = None
    redirect_uri: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    refresh_token: str | None = None


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    scope: str


class RevokeRequest(BaseModel):
    token: str | None = None
    token_type_hint: TokenTypeHint | None = None


class UserInfoResponse(BaseModel):
    sub: str
    scope: str


class TokenInfo(BaseModel):
    """Identity behind a valid access token."""

    user_id: str
    client_id: str
    scopes: list[str]
