from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from trust_engine.core.postgres import AsyncSessionLocal
from trust_engine.repositories.credential_store import CredentialStore
from trust_engine.services.api_key_service import ApiKeyService
from trust_engine.services.authorization_code_service import AuthorizationCodeService
from trust_engine.services.oauth_client_service import OAuthClientService
from trust_engine.services.token_service import TokenService
from trust_engine.services.token_verifier import TokenVerifierService


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


async def get_credential_store(db: AsyncSession = Depends(get_db)) -> CredentialStore:
    return CredentialStore(db)


async def get_api_key_service(
    store: CredentialStore = Depends(get_credential_store),
) -> ApiKeyService:
    return ApiKeyService(store)


async def get_oauth_client_service(
    store: CredentialStore = Depends(get_credential_store),
) -> OAuthClientService:
    return OAuthClientService(store)


async def get_authorization_code_service(
    store: CredentialStore = Depends(get_credential_store),
) -> AuthorizationCodeService:
    return AuthorizationCodeService(store)


async def get_token_service(
    store: CredentialStore = Depends(get_credential_store),
) -> TokenService:
    return TokenService(store)


async def get_token_verifier(
    store: CredentialStore = Depends(get_credential_store),
) -> TokenVerifierService:
    return TokenVerifierService(store)
