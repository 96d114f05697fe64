from .api_key_repo import ApiKeyRepository
from .credential_store import CredentialStore
from .oauth_client_repo import OAuthClientRepository
from .oauth_token_repo import (
    AccessTokenRepository,
    AuthorizationCodeRepository,
    RefreshTokenRepository,
)
from .postgres_repo import PostgresRepository
from .usage_log_repo import ApiUsageLogRepository

__all__ = [
    "PostgresRepository",
    "CredentialStore",
    "ApiKeyRepository",
    "ApiUsageLogRepository",
    "OAuthClientRepository",
    "AuthorizationCodeRepository",
    "AccessTokenRepository",
    "RefreshTokenRepository",
]
