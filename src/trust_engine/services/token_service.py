"""
TokenService

Issues access/refresh token pairs and rotates them.

Lineage of a grant:

    code --exchange--> pair #1 --refresh--> pair #2 --refresh--> ... --revoke--> dead

Each arrow is one transaction whose commit point is a conditional UPDATE:
the code's `used` flag for an exchange, the refresh token's `revoked` flag for
a rotation. Of any number of concurrent attempts on the same code or refresh
token exactly one flips the flag; the others get InvalidGrantError and create
nothing.
"""

import logging
import uuid
from datetime import datetime, timedelta

from trust_engine.core.clock import Clock, as_utc, utcnow
from trust_engine.core.config import settings
from trust_engine.core.exceptions import InvalidClientError, InvalidGrantError
from trust_engine.core.security import secret_hasher
from trust_engine.repositories.credential_store import CredentialStore
from trust_engine.schemas.oauth import TokenResponse
from trust_engine.services.oauth_client_service import OAuthClientService

logger = logging.getLogger(__name__)


class TokenService:
    def __init__(self, store: CredentialStore, clock: Clock | None = None):
        self.store = store
        self.clock = clock or utcnow
        self.clients = OAuthClientService(store, clock)

    async def exchange_code(
        self,
        code: str,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
    ) -> TokenResponse:
        """
        authorization_code grant.

        Steps:
            1. Verify client credentials
            2. Look up the code; it must belong to this client, be unused,
               unexpired, and carry the same redirect_uri
            3. Mark it used (conditional UPDATE, the commit point)
            4. Mint and persist a linked access/refresh pair

        Any failure rolls the whole exchange back.
        """
        now = self.clock()

        async with self.store.transaction():
            # ── Step 1: Client credentials ────────────────────────────────
            if not await self.clients.verify_client(client_id, client_secret):
                logger.debug(f"[oauth] Exchange rejected: bad credentials for {client_id[:20]}...")
                raise InvalidClientError()

            # ── Step 2: Code checks ───────────────────────────────────────
            auth_code = await self.store.authorization_codes.get_by_code(code)
            if auth_code is None or auth_code.client_id != client_id:
                logger.debug("[oauth] Exchange rejected: unknown code or client mismatch")
                raise InvalidGrantError()
            if auth_code.used or as_utc(auth_code.expires_at) <= now:
                logger.debug(f"[oauth] Exchange rejected: code {auth_code.id} used or expired")
                raise InvalidGrantError()
            if auth_code.redirect_uri != redirect_uri:
                logger.debug(f"[oauth] Exchange rejected: redirect_uri mismatch on code {auth_code.id}")
                raise InvalidGrantError()

            # ── Step 3: Commit point ──────────────────────────────────────
            if not await self.store.authorization_codes.consume(auth_code.id, now):
                logger.warning(f"[oauth] Code {auth_code.id} consumed concurrently")
                raise InvalidGrantError()

            # ── Step 4: Mint pair ─────────────────────────────────────────
            tokens = await self._mint_pair(client_id, auth_code.user_id, list(auth_code.scopes), now)

        logger.info(f"[oauth] Exchanged code for client {client_id[:20]}... user={auth_code.user_id}")
        return tokens

    async def refresh_access_token(
        self,
        refresh_token: str,
        client_id: str | None = None,
        client_secret: str | None = None,
    ) -> TokenResponse:
        """
        refresh_token grant: retire the presented pair and issue a fresh one.

        When client_id is given the refresh token must have been issued to
        that client; when client_secret is given too the client must
        authenticate. Reusing a rotated refresh token always fails.
        """
        now = self.clock()

        async with self.store.transaction():
            if client_secret is not None:
                if not client_id or not await self.clients.verify_client(client_id, client_secret):
                    raise InvalidClientError()

            record = await self.store.refresh_tokens.get_by_hash(secret_hasher.hash(refresh_token))
            if record is None or record.revoked or as_utc(record.expires_at) <= now:
                logger.debug("[oauth] Refresh rejected: unknown, revoked or expired token")
                raise InvalidGrantError()

            access = await self.store.access_tokens.get(record.access_token_id)
            if access is None or (client_id is not None and access.client_id != client_id):
                logger.debug(f"[oauth] Refresh rejected: token {record.id} bound to another client")
                raise InvalidGrantError()

            client = await self.store.clients.get_by_client_id(access.client_id)
            if client is None or not client.is_active:
                raise InvalidGrantError()

            # Commit point: only one rotation of this refresh token can win
            if not await self.store.refresh_tokens.revoke_if_active(record.id, now):
                logger.warning(f"[oauth] Refresh token {record.id} rotated concurrently")
                raise InvalidGrantError()
            await self.store.access_tokens.revoke(access.id)

            tokens = await self._mint_pair(access.client_id, access.user_id, list(access.scopes), now)

        logger.info(f"[oauth] Rotated token pair for client {access.client_id[:20]}... user={access.user_id}")
        return tokens

    async def _mint_pair(
        self, client_id: str, user_id: str, scopes: list[str], now: datetime
    ) -> TokenResponse:
        access_token, access_hash = secret_hasher.generate_with_hash()
        refresh_token, refresh_hash = secret_hasher.generate_with_hash()

        access = await self.store.access_tokens.create(
            {
                "id": uuid.uuid4(),
                "token_hash": access_hash,
                "client_id": client_id,
                "user_id": user_id,
                "scopes": scopes,
                "expires_at": now + timedelta(seconds=settings.OAUTH_ACCESS_TOKEN_TTL_SECONDS),
                "revoked": False,
                "created_at": now,
            }
        )
        await self.store.refresh_tokens.create(
            {
                "id": uuid.uuid4(),
                "token_hash": refresh_hash,
                "access_token_id": access.id,
                "expires_at": now + timedelta(days=settings.OAUTH_REFRESH_TOKEN_TTL_DAYS),
                "revoked": False,
                "created_at": now,
            }
        )

        return TokenResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="Bearer",
            expires_in=settings.OAUTH_ACCESS_TOKEN_TTL_SECONDS,
            scope=" ".join(scopes),
        )
