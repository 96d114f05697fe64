import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from trust_engine.schemas.common import ensure_utc, normalize_scopes


class CreateApiKeyRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    scopes: list[str] = Field(default_factory=list)
    rate_limit: int | None = Field(default=None, gt=0)
    rate_limit_window: int | None = Field(default=None, gt=0, description="Window in seconds")
    expires_at: datetime | None = None  # Optional expiry

    @field_validator("scopes")
    @classmethod
    def validate_scopes(cls, v: list[str]) -> list[str]:
        return normalize_scopes(v)

    @field_validator("expires_at")
    @classmethod
    def validate_expires_at(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v)


class UpdateApiKeyRequest(BaseModel):
    """Partial update. Keys are revoked via DELETE and cannot be re-activated."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=100)
    scopes: list[str] | None = None
    rate_limit: int | None = Field(default=None, gt=0)
    rate_limit_window: int | None = Field(default=None, gt=0)

    @field_validator("scopes")
    @classmethod
    def validate_scopes(cls, v: list[str] | None) -> list[str] | None:
        return normalize_scopes(v) if v is not None else v


class ApiKeyListItem(BaseModel):
    id: uuid.UUID
    name: str
    key_prefix: str
    scopes: list[str]
    rate_limit: int
    rate_limit_window: int
    is_active: bool
    last_used_at: datetime | None = None
    expires_at: datetime | None = None
    created_at: datetime

    @field_validator("last_used_at", "expires_at", "created_at")
    @classmethod
    def validate_timestamps(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v)

    class Config:
        from_attributes = True


class CreatedApiKey(ApiKeyListItem):
    # The plaintext key is ONLY returned here, once. It is never stored.
    key: str


class ActiveKeyInfo(BaseModel):
    """What a successful verify_key hands to the request pipeline."""

    id: uuid.UUID
    owner_id: str
    name: str
    key_prefix: str
    scopes: list[str]
    rate_limit: int
    rate_limit_window: int
    expires_at: datetime | None = None
    last_used_at: datetime | None = None

    @field_validator("expires_at", "last_used_at")
    @classmethod
    def validate_timestamps(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v)

    class Config:
        from_attributes = True


class UsageStats(BaseModel):
    total_requests: int
    success_count: int
    failure_count: int
    avg_latency_ms: int
    by_endpoint: dict[str, int]
    by_day: dict[str, int]


class RateLimitStatus(BaseModel):
    allowed: bool
    limit: int
    remaining: int
    # now + window: an upper bound, not the moment the oldest counted call leaves the window
    reset_at: datetime
