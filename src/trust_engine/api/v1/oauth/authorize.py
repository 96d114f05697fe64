import logging
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from fastapi import APIRouter, Depends, Query

from trust_engine.api.dependencies.auth_deps import get_current_owner_id
from trust_engine.api.dependencies.deps import get_authorization_code_service
from trust_engine.core.exceptions import OAuthProtocolError, TrustEngineException
from trust_engine.schemas.common import ApiResponse, parse_scope_string
from trust_engine.schemas.oauth import AuthorizeDecision, AuthorizeRedirect, PendingGrant
from trust_engine.services.authorization_code_service import AuthorizationCodeService

logger = logging.getLogger(__name__)

router = APIRouter()


def _scopes_or_error(scope: str) -> list[str]:
    try:
        return parse_scope_string(scope)
    except ValueError as e:
        raise OAuthProtocolError("invalid_request", str(e)) from e


def _redirect_with(redirect_uri: str, **params: str | None) -> str:
    """Append query parameters to a registered redirect URI, keeping its own query."""
    parts = urlsplit(redirect_uri)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend((k, v) for k, v in params.items() if v is not None)
    return urlunsplit(parts._replace(query=urlencode(query)))


@router.get(
    "/authorize",
    response_model=ApiResponse[PendingGrant],
    summary="Begin an authorization request",
)
async def authorize(
    response_type: str = Query(..., description="Must be 'code'"),
    client_id: str = Query(...),
    redirect_uri: str = Query(...),
    scope: str = Query(..., description="Space-delimited scopes"),
    state: str | None = Query(default=None),
    codes: AuthorizationCodeService = Depends(get_authorization_code_service),
) -> ApiResponse[PendingGrant]:
    """
    Validate an authorization request and describe what the user is asked to approve.

    Nothing is redirected from here: a bad client or redirect URI is reported
    to the caller, never sent to an unregistered URI.
    """
    if response_type != "code":
        raise OAuthProtocolError("invalid_request", "response_type must be 'code'")

    scopes = _scopes_or_error(scope)
    try:
        grant = await codes.describe_grant(client_id, redirect_uri, scopes, state=state)
    except TrustEngineException as e:
        raise OAuthProtocolError("invalid_request", e.message) from e

    return ApiResponse(
        data=grant,
        message="Authorization request received. The user should approve or deny it.",
    )


@router.post(
    "/authorize",
    response_model=AuthorizeRedirect,
    summary="Approve or deny an authorization request",
)
async def decide_authorization(
    decision: AuthorizeDecision,
    user_id: str = Depends(get_current_owner_id),
    codes: AuthorizationCodeService = Depends(get_authorization_code_service),
) -> AuthorizeRedirect:
    """
    The signed-in user's answer to the consent screen.

    Approve: a code is issued and the redirect URL carries `code` and `state`.
    Deny: the redirect URL carries `error=access_denied` and `state`.
    Either way the request is validated first.
    """
    scopes = _scopes_or_error(decision.scope)

    try:
        if not decision.approved:
            await codes.describe_grant(decision.client_id, decision.redirect_uri, scopes)
            logger.info(f"[oauth] User {user_id} denied client {decision.client_id[:20]}...")
            return AuthorizeRedirect(
                success=False,
                redirect_url=_redirect_with(
                    decision.redirect_uri,
                    error="access_denied",
                    error_description="User denied authorization",
                    state=decision.state,
                ),
            )

        result = await codes.issue_code(decision.client_id, user_id, decision.redirect_uri, scopes)
    except TrustEngineException as e:
        raise OAuthProtocolError("invalid_request", e.message) from e

    return AuthorizeRedirect(
        redirect_url=_redirect_with(decision.redirect_uri, code=result.code, state=decision.state)
    )
