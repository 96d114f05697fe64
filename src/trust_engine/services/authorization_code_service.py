import logging
import uuid
from datetime import timedelta

from trust_engine.core.clock import Clock, utcnow
from trust_engine.core.config import settings
from trust_engine.core.exceptions import (
    InvalidClientError,
    InvalidRedirectUriError,
    InvalidScopeError,
    ValidationError,
)
from trust_engine.core.security import secret_hasher
from trust_engine.models.oauth_client import OAuthClientORM
from trust_engine.repositories.credential_store import CredentialStore
from trust_engine.schemas.oauth import AuthorizationCodeResult, PendingGrant

logger = logging.getLogger(__name__)


class AuthorizationCodeService:
    """
    The authorize step of the authorization-code grant.

    Every request is checked against the client's closed allow-lists:
        1. client exists and is active            -> InvalidClientError
        2. redirect_uri is registered, verbatim    -> InvalidRedirectUriError
        3. at least one scope is requested         -> ValidationError
        4. every scope is registered               -> InvalidScopeError
    """

    def __init__(self, store: CredentialStore, clock: Clock | None = None):
        self.store = store
        self.clock = clock or utcnow

    async def describe_grant(
        self,
        client_id: str,
        redirect_uri: str,
        requested_scopes: list[str],
        state: str | None = None,
    ) -> PendingGrant:
        """What the user is being asked to approve. Writes nothing."""
        client = await self._check_request(client_id, redirect_uri, requested_scopes)
        return PendingGrant(
            client_id=client.client_id,
            client_name=client.name,
            client_description=client.description,
            redirect_uri=redirect_uri,
            scopes=requested_scopes,
            state=state,
        )

    async def issue_code(
        self,
        client_id: str,
        user_id: str,
        redirect_uri: str,
        requested_scopes: list[str],
    ) -> AuthorizationCodeResult:
        """Mint a single-use code bound to this client, user, redirect URI and scope set."""
        code = secret_hasher.generate()
        expires_at = self.clock() + timedelta(seconds=settings.OAUTH_AUTHORIZATION_CODE_TTL_SECONDS)

        async with self.store.transaction():
            await self._check_request(client_id, redirect_uri, requested_scopes)
            await self.store.authorization_codes.create(
                {
                    "id": uuid.uuid4(),
                    "code": code,
                    "client_id": client_id,
                    "user_id": user_id,
                    "redirect_uri": redirect_uri,
                    "scopes": list(requested_scopes),
                    "expires_at": expires_at,
                    "used": False,
                    "created_at": self.clock(),
                }
            )

        logger.info(f"[oauth] Issued code for client {client_id[:20]}... user={user_id}")
        return AuthorizationCodeResult(code=code, expires_at=expires_at)

    async def _check_request(
        self, client_id: str, redirect_uri: str, requested_scopes: list[str]
    ) -> OAuthClientORM:
        client = await self.store.clients.get_by_client_id(client_id)
        if client is None or not client.is_active:
            raise InvalidClientError()

        if redirect_uri not in client.redirect_uris:
            raise InvalidRedirectUriError()

        if not requested_scopes:
            raise ValidationError("At least one scope must be requested", fields=["scope"])

        invalid_scopes = [s for s in requested_scopes if s not in client.scopes]
        if invalid_scopes:
            raise InvalidScopeError(invalid_scopes)

        return client
