import logging

from trust_engine.core.clock import Clock, utcnow
from trust_engine.core.config import settings
from trust_engine.core.exceptions import NotFoundError
from trust_engine.core.security import secret_hasher
from trust_engine.repositories.credential_store import CredentialStore
from trust_engine.schemas.oauth import TokenInfo

logger = logging.getLogger(__name__)


class TokenVerifierService:
    """Resource-side checks on OAuth bearer tokens, and every way of revoking them."""

    def __init__(self, store: CredentialStore, clock: Clock | None = None):
        self.store = store
        self.clock = clock or utcnow

    async def verify_access_token(self, token: str) -> TokenInfo | None:
        """
        Identity behind a live access token.

        None for unknown, revoked and expired tokens alike. Read only.
        """
        if not token:
            return None
        record = await self.store.access_tokens.get_valid_by_hash(
            secret_hasher.hash(token), self.clock()
        )
        if record is None:
            return None
        return TokenInfo(user_id=record.user_id, client_id=record.client_id, scopes=list(record.scopes))

    async def revoke_access_token(self, token: str) -> bool:
        """
        Revoke one access token. Unknown or already revoked tokens are a no-op.

        Returns whether the token was found.
        """
        async with self.store.transaction():
            record = await self.store.access_tokens.get_by_hash(secret_hasher.hash(token))
            if record is None:
                return False
            if await self.store.access_tokens.revoke(record.id):
                logger.info(f"[oauth] Revoked access token {record.id}")
        return True

    async def revoke_refresh_token(self, token: str) -> bool:
        """Revoke a refresh token and the access token it is paired with."""
        async with self.store.transaction():
            record = await self.store.refresh_tokens.get_by_hash(secret_hasher.hash(token))
            if record is None:
                return False
            await self.store.refresh_tokens.revoke(record.id)
            await self.store.access_tokens.revoke(record.access_token_id)
        logger.info(f"[oauth] Revoked refresh token {record.id} and its access token")
        return True

    async def revoke_token(self, token: str, token_type_hint: str | None = None) -> None:
        """
        Revocation endpoint semantics: try the hinted type first, then the other.

        Succeeds whether or not the token exists.
        """
        if token_type_hint == "refresh_token":
            attempts = (self.revoke_refresh_token, self.revoke_access_token)
        else:
            attempts = (self.revoke_access_token, self.revoke_refresh_token)

        for revoke in attempts:
            if await revoke(token):
                return

    async def revoke_all_client_tokens(self, owner_id: str, client_id: str) -> int:
        """
        Kill switch for an integration: revoke every access token of a client.

        Refresh tokens are revoked too unless
        OAUTH_REVOKE_CASCADES_TO_REFRESH_TOKENS is off. Returns how many
        access tokens were live before the call.
        """
        async with self.store.transaction():
            client = await self.store.clients.get_for_owner(owner_id, client_id)
            if client is None:
                raise NotFoundError("OAuth client not found")

            revoked = await self.store.access_tokens.revoke_all_for_client(client.client_id)
            refresh_revoked = 0
            if settings.OAUTH_REVOKE_CASCADES_TO_REFRESH_TOKENS:
                refresh_revoked = await self.store.refresh_tokens.revoke_all_for_client(
                    client.client_id
                )

        logger.info(
            f"[oauth] Revoked {revoked} access and {refresh_revoked} refresh tokens "
            f"for client {client_id[:20]}..."
        )
        return revoked
