import logging
import uuid
from typing import Any

from trust_engine.core.clock import Clock, utcnow
from trust_engine.core.config import settings
from trust_engine.core.exceptions import NotFoundError, ValidationError
from trust_engine.core.security import secret_hasher
from trust_engine.models.oauth_client import OAuthClientORM
from trust_engine.repositories.credential_store import CredentialStore
from trust_engine.schemas.oauth import CreatedOAuthClient, OAuthClientItem

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"name", "description", "redirect_uris", "scopes", "is_active"})
REQUIRED_FIELDS = frozenset({"name", "redirect_uris", "scopes", "is_active"})


class OAuthClientService:
    """Registry of third-party applications allowed to request user authorization."""

    def __init__(self, store: CredentialStore, clock: Clock | None = None):
        self.store = store
        self.clock = clock or utcnow

    async def create_client(
        self,
        owner_id: str,
        name: str,
        description: str | None,
        redirect_uris: list[str],
        scopes: list[str],
    ) -> CreatedOAuthClient:
        """
        Register a client.

        client_id is public (opx_client_ + 32 hex). The client_secret is
        returned here and nowhere else; only its hash is kept.
        """
        if not redirect_uris:
            raise ValidationError("At least one redirect URI is required", fields=["redirect_uris"])

        client_id = secret_hasher.generate(settings.OAUTH_CLIENT_ID_PREFIX, nbytes=16)
        client_secret, client_secret_hash = secret_hasher.generate_with_hash()
        now = self.clock()

        async with self.store.transaction():
            client = await self.store.clients.create(
                {
                    "id": uuid.uuid4(),
                    "owner_id": owner_id,
                    "client_id": client_id,
                    "client_secret_hash": client_secret_hash,
                    "name": name,
                    "description": description,
                    "redirect_uris": list(redirect_uris),
                    "scopes": list(scopes),
                    "is_active": True,
                    "created_at": now,
                    "updated_at": now,
                }
            )

        logger.info(f"[oauth] Registered client {client_id[:20]}... owner={owner_id}")
        return CreatedOAuthClient(
            client_secret=client_secret,
            **OAuthClientItem.model_validate(client).model_dump(),
        )

    async def list_clients(self, owner_id: str) -> list[OAuthClientItem]:
        clients = await self.store.clients.list_by_owner(owner_id)
        return [OAuthClientItem.model_validate(c) for c in clients]

    async def get_client(self, owner_id: str, client_id: str) -> OAuthClientItem:
        return OAuthClientItem.model_validate(await self._get_owned(owner_id, client_id))

    async def update_client(
        self, owner_id: str, client_id: str, fields: dict[str, Any]
    ) -> OAuthClientItem:
        unknown = sorted(set(fields) - UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update: {', '.join(unknown)}", fields=unknown)
        missing = sorted(f for f in REQUIRED_FIELDS & set(fields) if fields[f] is None)
        if "redirect_uris" in fields and not fields["redirect_uris"]:
            missing.append("redirect_uris")
        if missing:
            raise ValidationError(f"Invalid value for: {', '.join(missing)}", fields=missing)

        async with self.store.transaction():
            client = await self._get_owned(owner_id, client_id)
            if fields:
                await self.store.clients.update_where(client.id, [], dict(fields))
                client = await self._get_owned(owner_id, client_id)

        logger.info(f"[oauth] Updated client {client_id[:20]}... fields={sorted(fields)}")
        return OAuthClientItem.model_validate(client)

    async def delete_client(self, owner_id: str, client_id: str) -> None:
        """Hard delete. Codes and tokens issued to the client go with it."""
        async with self.store.transaction():
            client = await self._get_owned(owner_id, client_id)
            await self.store.clients.delete_with_grants(client)

        logger.info(f"[oauth] Deleted client {client_id[:20]}... owner={owner_id}")

    async def verify_client(self, client_id: str, client_secret: str) -> bool:
        """True only for an active client presenting its own secret."""
        if not client_id or not client_secret:
            return False
        client = await self.store.clients.get_by_client_id(client_id)
        if client is None or not client.is_active:
            return False
        return secret_hasher.verify(client_secret, client.client_secret_hash)

    async def _get_owned(self, owner_id: str, client_id: str) -> OAuthClientORM:
        client = await self.store.clients.get_for_owner(owner_id, client_id)
        if client is None:
            raise NotFoundError("OAuth client not found")
        return client
