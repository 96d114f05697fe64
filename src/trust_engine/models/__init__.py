from .api_key import ApiKeyORM
from .api_usage_log import ApiUsageLogORM
from .oauth_client import OAuthClientORM
from .oauth_token import OAuthAccessTokenORM, OAuthAuthorizationCodeORM, OAuthRefreshTokenORM

__all__ = [
    "ApiKeyORM",
    "ApiUsageLogORM",
    "OAuthClientORM",
    "OAuthAuthorizationCodeORM",
    "OAuthAccessTokenORM",
    "OAuthRefreshTokenORM",
]
