"""
CredentialStore: the one mutable shared resource of the trust subsystem.

Bundles the repositories for every credential table over a single
AsyncSession so a service can read and conditionally write several tables
inside one transaction:

    async with store.transaction():
        if not await store.authorization_codes.consume(code.id, now):
            raise InvalidGrantError()
        ...

Anything raised inside the block rolls the whole unit back. Database errors
are re-raised as ServerError so no driver detail reaches a client.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from trust_engine.core.exceptions import ServerError
from trust_engine.repositories.api_key_repo import ApiKeyRepository
from trust_engine.repositories.oauth_client_repo import OAuthClientRepository
from trust_engine.repositories.oauth_token_repo import (
    AccessTokenRepository,
    AuthorizationCodeRepository,
    RefreshTokenRepository,
)
from trust_engine.repositories.usage_log_repo import ApiUsageLogRepository

logger = logging.getLogger(__name__)


class CredentialStore:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.api_keys = ApiKeyRepository(session)
        self.usage_logs = ApiUsageLogRepository(session)
        self.clients = OAuthClientRepository(session)
        self.authorization_codes = AuthorizationCodeRepository(session)
        self.access_tokens = AccessTokenRepository(session)
        self.refresh_tokens = RefreshTokenRepository(session)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["CredentialStore"]:
        """Commit everything done in the block, or nothing."""
        try:
            yield self
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception(f"[store] Transaction rolled back: {type(e).__name__}")
            raise ServerError("Credential store unavailable") from e
        except BaseException:
            await self.session.rollback()
            raise
