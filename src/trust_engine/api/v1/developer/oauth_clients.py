from fastapi import APIRouter, Depends, status

from trust_engine.api.dependencies.auth_deps import get_current_owner_id
from trust_engine.api.dependencies.deps import get_oauth_client_service, get_token_verifier
from trust_engine.schemas.common import ApiResponse
from trust_engine.schemas.oauth import (
    CreatedOAuthClient,
    CreateOAuthClientRequest,
    OAuthClientItem,
    RevokedTokens,
    UpdateOAuthClientRequest,
)
from trust_engine.services.oauth_client_service import OAuthClientService
from trust_engine.services.token_verifier import TokenVerifierService

router = APIRouter()


@router.get(
    "/oauth/clients",
    response_model=ApiResponse[list[OAuthClientItem]],
    summary="List your OAuth clients",
)
async def list_oauth_clients(
    owner_id: str = Depends(get_current_owner_id),
    service: OAuthClientService = Depends(get_oauth_client_service),
) -> ApiResponse[list[OAuthClientItem]]:
    return ApiResponse(data=await service.list_clients(owner_id))


@router.post(
    "/oauth/clients",
    response_model=ApiResponse[CreatedOAuthClient],
    status_code=status.HTTP_201_CREATED,
    summary="Register an OAuth client",
)
async def create_oauth_client(
    payload: CreateOAuthClientRequest,
    owner_id: str = Depends(get_current_owner_id),
    service: OAuthClientService = Depends(get_oauth_client_service),
) -> ApiResponse[CreatedOAuthClient]:
    """
    Register a third-party application.

    The client_secret is shown ONCE in the response and never stored.
    """
    created = await service.create_client(
        owner_id,
        payload.name,
        payload.description,
        payload.redirect_uris,
        payload.scopes,
    )
    return ApiResponse(
        data=created, message="Store this client secret securely. It will not be shown again."
    )


@router.get(
    "/oauth/clients/{client_id}",
    response_model=ApiResponse[OAuthClientItem],
    summary="Get one OAuth client",
)
async def get_oauth_client(
    client_id: str,
    owner_id: str = Depends(get_current_owner_id),
    service: OAuthClientService = Depends(get_oauth_client_service),
) -> ApiResponse[OAuthClientItem]:
    return ApiResponse(data=await service.get_client(owner_id, client_id))


@router.patch(
    "/oauth/clients/{client_id}",
    response_model=ApiResponse[OAuthClientItem],
    summary="Update an OAuth client",
)
async def update_oauth_client(
    client_id: str,
    payload: UpdateOAuthClientRequest,
    owner_id: str = Depends(get_current_owner_id),
    service: OAuthClientService = Depends(get_oauth_client_service),
) -> ApiResponse[OAuthClientItem]:
    updated = await service.update_client(owner_id, client_id, payload.model_dump(exclude_unset=True))
    return ApiResponse(data=updated, message="OAuth client updated")


@router.delete(
    "/oauth/clients/{client_id}",
    response_model=ApiResponse[None],
    summary="Delete an OAuth client",
)
async def delete_oauth_client(
    client_id: str,
    owner_id: str = Depends(get_current_owner_id),
    service: OAuthClientService = Depends(get_oauth_client_service),
) -> ApiResponse[None]:
    """Permanently delete the client along with every code and token issued to it."""
    await service.delete_client(owner_id, client_id)
    return ApiResponse(message="OAuth client deleted")


@router.post(
    "/oauth/clients/{client_id}/revoke-tokens",
    response_model=ApiResponse[RevokedTokens],
    summary="Revoke every token issued to an OAuth client",
)
async def revoke_oauth_client_tokens(
    client_id: str,
    owner_id: str = Depends(get_current_owner_id),
    verifier: TokenVerifierService = Depends(get_token_verifier),
) -> ApiResponse[RevokedTokens]:
    revoked = await verifier.revoke_all_client_tokens(owner_id, client_id)
    return ApiResponse(
        data=RevokedTokens(revoked_access_tokens=revoked), message="All client tokens revoked"
    )
