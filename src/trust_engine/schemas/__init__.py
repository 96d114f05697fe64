from .api_key import (
    ActiveKeyInfo,
    ApiKeyListItem,
    CreateApiKeyRequest,
    CreatedApiKey,
    RateLimitStatus,
    UpdateApiKeyRequest,
    UsageStats,
)
from .common import ApiResponse
from .oauth import (
    AuthorizationCodeResult,
    AuthorizeDecision,
    AuthorizeRedirect,
    CreatedOAuthClient,
    CreateOAuthClientRequest,
    OAuthClientItem,
    PendingGrant,
    RevokedTokens,
    RevokeRequest,
    TokenInfo,
    TokenRequest,
    TokenResponse,
    UpdateOAuthClientRequest,
    UserInfoResponse,
)
from .principal import ApiPrincipal

__all__ = [
    "ApiResponse",
    "ActiveKeyInfo",
    "ApiKeyListItem",
    "CreateApiKeyRequest",
    "CreatedApiKey",
    "RateLimitStatus",
    "UpdateApiKeyRequest",
    "UsageStats",
    "AuthorizationCodeResult",
    "AuthorizeDecision",
    "AuthorizeRedirect",
    "CreatedOAuthClient",
    "CreateOAuthClientRequest",
    "OAuthClientItem",
    "PendingGrant",
    "RevokedTokens",
    "RevokeRequest",
    "TokenInfo",
    "TokenRequest",
    "TokenResponse",
    "UpdateOAuthClientRequest",
    "UserInfoResponse",
    "ApiPrincipal",
]
