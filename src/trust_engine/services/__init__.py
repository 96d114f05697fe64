from .api_key_service import ApiKeyService
from .authorization_code_service import AuthorizationCodeService
from .oauth_client_service import OAuthClientService
from .token_service import TokenService
from .token_verifier import TokenVerifierService
from .usage_ledger import UsageLedger

__all__ = [
    "ApiKeyService",
    "AuthorizationCodeService",
    "OAuthClientService",
    "TokenService",
    "TokenVerifierService",
    "UsageLedger",
]
