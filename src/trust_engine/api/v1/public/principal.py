from fastapi import APIRouter, Depends

from trust_engine.api.dependencies.api_client_deps import get_api_principal
from trust_engine.schemas.common import ApiResponse
from trust_engine.schemas.principal import ApiPrincipal

router = APIRouter()


@router.get(
    "/principal",
    response_model=ApiResponse[ApiPrincipal],
    summary="Who is calling",
)
async def whoami(principal: ApiPrincipal = Depends(get_api_principal)) -> ApiResponse[ApiPrincipal]:
    """
    Resolve the credentials on this request the same way every public API route does.

    Integrations use it to check a key or token, its scopes and, for API keys,
    the X-RateLimit-* headers. Calls made with an API key count against its
    rate limit.
    """
    return ApiResponse(data=principal)
