from datetime import UTC, datetime
from typing import Generic, TypeVar
from urllib.parse import urlsplit

from pydantic import BaseModel

DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    """Success envelope of the /developer routes and the non-token /oauth routes."""

    success: bool = True
    data: DataT | None = None
    message: str | None = None


def ensure_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def normalize_scopes(scopes: list[str]) -> list[str]:
    """Strip, drop duplicates (keeping order) and reject scopes that contain whitespace."""
    cleaned: list[str] = []
    for scope in scopes:
        scope = scope.strip()
        if not scope or any(ch.isspace() for ch in scope):
            raise ValueError(f"Invalid scope name: {scope!r}")
        if scope not in cleaned:
            cleaned.append(scope)
    return cleaned


def parse_scope_string(scope: str) -> list[str]:
    """OAuth scope parameter: space-delimited list."""
    return normalize_scopes(scope.split())


def validate_absolute_url(value: str) -> str:
    """Require scheme and host; keep the string byte-for-byte for exact matching."""
    parts = urlsplit(value)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError(f"Not an absolute http(s) URL: {value!r}")
    if parts.fragment:
        raise ValueError("Redirect URIs must not contain a fragment")
    return value
