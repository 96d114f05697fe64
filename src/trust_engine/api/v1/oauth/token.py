from fastapi import APIRouter, Depends, Response, status

from trust_engine.api.dependencies.deps import get_token_service, get_token_verifier
from trust_engine.core.exceptions import InvalidCredentialError, OAuthProtocolError
from trust_engine.schemas.common import ApiResponse
from trust_engine.schemas.oauth import RevokeRequest, TokenRequest, TokenResponse
from trust_engine.services.token_service import TokenService
from trust_engine.services.token_verifier import TokenVerifierService

router = APIRouter()


@router.post("/token", response_model=TokenResponse, summary="Token endpoint")
async def token(
    payload: TokenRequest,
    response: Response,
    tokens: TokenService = Depends(get_token_service),
) -> TokenResponse:
    """
    Exchange an authorization code, or a refresh token, for a new token pair.

    Every credential failure (bad client secret, unknown, used or expired
    code, redirect mismatch, revoked refresh token) is reported as the same
    `invalid_grant`.
    """
    response.headers["Cache-Control"] = "no-store"
    response.headers["Pragma"] = "no-cache"

    try:
        if payload.grant_type == "authorization_code":
            if not (
                payload.code
                and payload.redirect_uri
                and payload.client_id
                and payload.client_secret
            ):
                raise OAuthProtocolError(
                    "invalid_request",
                    "code, redirect_uri, client_id and client_secret are required "
                    "for the authorization_code grant",
                )
            return await tokens.exchange_code(
                payload.code, payload.client_id, payload.client_secret, payload.redirect_uri
            )

        if not payload.refresh_token:
            raise OAuthProtocolError(
                "invalid_request", "refresh_token is required for the refresh_token grant"
            )
        return await tokens.refresh_access_token(
            payload.refresh_token,
            client_id=payload.client_id,
            client_secret=payload.client_secret,
        )

    except InvalidCredentialError as e:
        raise OAuthProtocolError("invalid_grant", e.message) from e


@router.post(
    "/revoke",
    response_model=ApiResponse[None],
    status_code=status.HTTP_200_OK,
    summary="Revoke a token",
)
async def revoke(
    payload: RevokeRequest,
    verifier: TokenVerifierService = Depends(get_token_verifier),
) -> ApiResponse[None]:
    """
    Revoke an access or refresh token.

    Unknown and already revoked tokens succeed too, so the response never
    tells a caller whether a token existed.
    """
    if not payload.token:
        raise OAuthProtocolError("invalid_request", "token is required")

    await verifier.revoke_token(payload.token, payload.token_type_hint)
    return ApiResponse(message="Token revoked successfully")
