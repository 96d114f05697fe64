from fastapi import APIRouter, Depends, Header, status

from trust_engine.api.dependencies.deps import get_token_verifier
from trust_engine.core.exceptions import OAuthProtocolError
from trust_engine.schemas.oauth import UserInfoResponse
from trust_engine.services.token_verifier import TokenVerifierService

router = APIRouter()


def _invalid_token(description: str) -> OAuthProtocolError:
    return OAuthProtocolError(
        "invalid_token",
        description,
        status_code=status.HTTP_401_UNAUTHORIZED,
        headers={"WWW-Authenticate": 'Bearer error="invalid_token"'},
    )


@router.get("/userinfo", response_model=UserInfoResponse, summary="Who owns this access token")
async def userinfo(
    authorization: str | None = Header(default=None),
    verifier: TokenVerifierService = Depends(get_token_verifier),
) -> UserInfoResponse:
    if not authorization or not authorization.startswith("Bearer "):
        raise _invalid_token("Bearer token is required")

    token_info = await verifier.verify_access_token(authorization[len("Bearer ") :].strip())
    if token_info is None:
        raise _invalid_token("Invalid or expired token")

    return UserInfoResponse(sub=token_info.user_id, scope=" ".join(token_info.scopes))
