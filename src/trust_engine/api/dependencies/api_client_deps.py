import logging
from collections.abc import Awaitable, Callable

from fastapi import Depends, Header, HTTPException, Request, Response, status

from trust_engine.api.dependencies.deps import get_api_key_service, get_token_verifier
from trust_engine.core.exceptions import RateLimitExceededError
from trust_engine.schemas.principal import ApiPrincipal
from trust_engine.services.api_key_service import ApiKeyService
from trust_engine.services.token_verifier import TokenVerifierService

logger = logging.getLogger(__name__)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_api_principal(
    request: Request,
    response: Response,
    authorization: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    api_keys: ApiKeyService = Depends(get_api_key_service),
    verifier: TokenVerifierService = Depends(get_token_verifier),
) -> ApiPrincipal:
    """
    Authenticate a third-party API call.

    Accepted credentials:
        Authorization: Bearer <oauth access token>
        Authorization: Bearer <api key>
        Authorization: <api key>
        X-API-Key: <api key>

    A Bearer value is tried as an OAuth access token first. API keys are
    rate limited and the request is flagged for the usage recorder.
    """
    if authorization and authorization.startswith("Bearer "):
        presented = authorization[len("Bearer ") :].strip()
        token_info = await verifier.verify_access_token(presented)
        if token_info:
            return ApiPrincipal(
                kind="oauth",
                subject=token_info.user_id,
                scopes=token_info.scopes,
                client_id=token_info.client_id,
            )
    else:
        presented = (authorization or x_api_key or "").strip()

    if not presented:
        raise _unauthorized("Authorization header is required")

    api_key = await api_keys.verify_key(presented)
    if api_key is None:
        raise _unauthorized("Invalid API key or token")

    # ── Rate limit ────────────────────────────────────────────────────────
    rate = await api_keys.check_rate_limit(api_key.id)
    headers = {
        "X-RateLimit-Limit": str(rate.limit),
        "X-RateLimit-Remaining": str(rate.remaining),
        "X-RateLimit-Reset": rate.reset_at.isoformat(),
    }

    if not rate.allowed:
        logger.info(f"[api-keys] Rate limit hit for key {api_key.key_prefix}... id={api_key.id}")
        headers["X-RateLimit-Remaining"] = "0"
        headers["Retry-After"] = str(api_key.rate_limit_window)
        raise RateLimitExceededError(retry_after=api_key.rate_limit_window, headers=headers)

    response.headers.update(headers)

    # Picked up by UsageRecorderMiddleware once the response is sent
    request.state.api_key_id = api_key.id

    return ApiPrincipal(
        kind="api_key",
        subject=api_key.owner_id,
        scopes=api_key.scopes,
        api_key_id=api_key.id,
    )


def require_scopes(*scopes: str) -> Callable[..., Awaitable[ApiPrincipal]]:
    """
    Dependency factory requiring every listed scope on the API principal.

    Usage:
        @router.get("/opportunities", dependencies=[Depends(require_scopes("read"))])
    """

    async def scope_checker(
        principal: ApiPrincipal = Depends(get_api_principal),
    ) -> ApiPrincipal:
        if not principal.has_scopes(*scopes):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required scopes: {', '.join(scopes)}",
            )
        return principal

    return scope_checker
