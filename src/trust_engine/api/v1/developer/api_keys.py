import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status

from trust_engine.api.dependencies.auth_deps import get_current_owner_id
from trust_engine.api.dependencies.deps import get_api_key_service
from trust_engine.schemas.api_key import (
    ApiKeyListItem,
    CreateApiKeyRequest,
    CreatedApiKey,
    RateLimitStatus,
    UpdateApiKeyRequest,
    UsageStats,
)
from trust_engine.schemas.common import ApiResponse, ensure_utc
from trust_engine.services.api_key_service import ApiKeyService

router = APIRouter()

SHOWN_ONCE = "Store this key securely. It will not be shown again."


@router.get(
    "/api-keys",
    response_model=ApiResponse[list[ApiKeyListItem]],
    summary="List your API keys",
)
async def list_api_keys(
    owner_id: str = Depends(get_current_owner_id),
    service: ApiKeyService = Depends(get_api_key_service),
) -> ApiResponse[list[ApiKeyListItem]]:
    """Newest first. Only the display prefix of each key is ever shown."""
    return ApiResponse(data=await service.list_keys(owner_id))


@router.post(
    "/api-keys",
    response_model=ApiResponse[CreatedApiKey],
    status_code=status.HTTP_201_CREATED,
    summary="Create an API key",
)
async def create_api_key(
    payload: CreateApiKeyRequest,
    owner_id: str = Depends(get_current_owner_id),
    service: ApiKeyService = Depends(get_api_key_service),
) -> ApiResponse[CreatedApiKey]:
    """
    Create an API key for calling the public API.

    The plaintext key is returned ONCE in this response and never stored.

    Key format: opx_{32 random bytes in hex}
    """
    created = await service.create_key(
        owner_id,
        payload.name,
        payload.scopes,
        rate_limit=payload.rate_limit,
        rate_limit_window=payload.rate_limit_window,
        expires_at=payload.expires_at,
    )
    return ApiResponse(data=created, message=SHOWN_ONCE)


@router.get(
    "/api-keys/{key_id}",
    response_model=ApiResponse[ApiKeyListItem],
    summary="Get one API key",
)
async def get_api_key(
    key_id: uuid.UUID,
    owner_id: str = Depends(get_current_owner_id),
    service: ApiKeyService = Depends(get_api_key_service),
) -> ApiResponse[ApiKeyListItem]:
    return ApiResponse(data=await service.get_key(owner_id, key_id))


@router.patch(
    "/api-keys/{key_id}",
    response_model=ApiResponse[ApiKeyListItem],
    summary="Update an API key",
)
async def update_api_key(
    key_id: uuid.UUID,
    payload: UpdateApiKeyRequest,
    owner_id: str = Depends(get_current_owner_id),
    service: ApiKeyService = Depends(get_api_key_service),
) -> ApiResponse[ApiKeyListItem]:
    """Change name, scopes or rate limit. A revoked key cannot be re-activated."""
    updated = await service.update_key(owner_id, key_id, payload.model_dump(exclude_unset=True))
    return ApiResponse(data=updated, message="API key updated")


@router.post(
    "/api-keys/{key_id}/rotate",
    response_model=ApiResponse[CreatedApiKey],
    summary="Rotate an API key",
)
async def rotate_api_key(
    key_id: uuid.UUID,
    owner_id: str = Depends(get_current_owner_id),
    service: ApiKeyService = Depends(get_api_key_service),
) -> ApiResponse[CreatedApiKey]:
    """
    Replace the key's secret. The old key stops working as soon as this returns.
    On failure the old key keeps working and the call can be retried.
    """
    rotated = await service.rotate_key(owner_id, key_id)
    return ApiResponse(data=rotated, message=SHOWN_ONCE)


@router.delete(
    "/api-keys/{key_id}",
    response_model=ApiResponse[None],
    summary="Revoke an API key",
)
async def revoke_api_key(
    key_id: uuid.UUID,
    owner_id: str = Depends(get_current_owner_id),
    service: ApiKeyService = Depends(get_api_key_service),
) -> ApiResponse[None]:
    await service.revoke_key(owner_id, key_id)
    return ApiResponse(message="API key revoked")


@router.get(
    "/api-keys/{key_id}/usage",
    response_model=ApiResponse[UsageStats],
    summary="Usage statistics of an API key",
)
async def get_api_key_usage(
    key_id: uuid.UUID,
    start_date: datetime | None = Query(default=None, description="Inclusive lower bound"),
    end_date: datetime | None = Query(default=None, description="Inclusive upper bound"),
    owner_id: str = Depends(get_current_owner_id),
    service: ApiKeyService = Depends(get_api_key_service),
) -> ApiResponse[UsageStats]:
    stats = await service.get_usage_stats(
        owner_id, key_id, start=ensure_utc(start_date), end=ensure_utc(end_date)
    )
    return ApiResponse(data=stats)


@router.get(
    "/api-keys/{key_id}/rate-limit",
    response_model=ApiResponse[RateLimitStatus],
    summary="Current rate-limit status of an API key",
)
async def get_api_key_rate_limit(
    key_id: uuid.UUID,
    owner_id: str = Depends(get_current_owner_id),
    service: ApiKeyService = Depends(get_api_key_service),
) -> ApiResponse[RateLimitStatus]:
    return ApiResponse(data=await service.get_rate_limit_status(owner_id, key_id))
