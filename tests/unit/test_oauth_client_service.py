"""Unit tests for the OAuth client registry."""

import pytest
from conftest import OTHER_OWNER_ID, OWNER_ID, REDIRECT_URI

from trust_engine.core.exceptions import NotFoundError, ValidationError
from trust_engine.core.security import secret_hasher
from trust_engine.services.oauth_client_service import OAuthClientService


@pytest.fixture
def service(store, clock) -> OAuthClientService:
    return OAuthClientService(store, clock)


class TestRegistration:
    @pytest.mark.asyncio
    async def test_create_client(self, service, store):
        created = await service.create_client(
            OWNER_ID, "Acme", None, [REDIRECT_URI], ["read"]
        )

        assert created.client_id.startswith("opx_client_")
        assert len(created.client_id) == len("opx_client_") + 32
        assert created.is_active is True
        assert created.redirect_uris == [REDIRECT_URI]

        row = await store.clients.get_by_client_id(created.client_id)
        assert row.client_secret_hash == secret_hasher.hash(created.client_secret)

    @pytest.mark.asyncio
    async def test_create_requires_redirect_uri(self, service):
        with pytest.raises(ValidationError):
            await service.create_client(OWNER_ID, "Acme", None, [], ["read"])

    @pytest.mark.asyncio
    async def test_listing_hides_secret(self, service, oauth_client):
        clients = await service.list_clients(OWNER_ID)

        assert [c.client_id for c in clients] == [oauth_client.client_id]
        assert "client_secret" not in clients[0].model_dump()
        assert await service.list_clients(OTHER_OWNER_ID) == []


class TestVerifyClient:
    @pytest.mark.asyncio
    async def test_valid_secret(self, service, oauth_client):
        assert await service.verify_client(oauth_client.client_id, oauth_client.client_secret)

    @pytest.mark.asyncio
    async def test_rejections(self, service, oauth_client):
        assert not await service.verify_client(oauth_client.client_id, "wrong")
        assert not await service.verify_client(oauth_client.client_id, "")
        assert not await service.verify_client("opx_client_unknown", oauth_client.client_secret)
        assert not await service.verify_client("", oauth_client.client_secret)

    @pytest.mark.asyncio
    async def test_inactive_client(self, service, oauth_client):
        await service.update_client(OWNER_ID, oauth_client.client_id, {"is_active": False})

        assert not await service.verify_client(oauth_client.client_id, oauth_client.client_secret)


class TestUpdateAndDelete:
    @pytest.mark.asyncio
    async def test_update(self, service, oauth_client):
        updated = await service.update_client(
            OWNER_ID,
            oauth_client.client_id,
            {"name": "Acme v2", "scopes": ["read"], "description": None},
        )

        assert updated.name == "Acme v2"
        assert updated.scopes == ["read"]
        assert updated.description is None
        assert updated.redirect_uris == oauth_client.redirect_uris

    @pytest.mark.asyncio
    async def test_update_rejects_empty_redirects(self, service, oauth_client):
        with pytest.raises(ValidationError):
            await service.update_client(OWNER_ID, oauth_client.client_id, {"redirect_uris": []})

    @pytest.mark.asyncio
    async def test_update_rejects_null_required_field(self, service, oauth_client):
        with pytest.raises(ValidationError):
            await service.update_client(OWNER_ID, oauth_client.client_id, {"name": None})

    @pytest.mark.asyncio
    async def test_other_owner(self, service, oauth_client):
        with pytest.raises(NotFoundError):
            await service.get_client(OTHER_OWNER_ID, oauth_client.client_id)
        with pytest.raises(NotFoundError):
            await service.update_client(OTHER_OWNER_ID, oauth_client.client_id, {"name": "x"})
        with pytest.raises(NotFoundError):
            await service.delete_client(OTHER_OWNER_ID, oauth_client.client_id)

    @pytest.mark.asyncio
    async def test_delete(self, service, oauth_client):
        await service.delete_client(OWNER_ID, oauth_client.client_id)

        with pytest.raises(NotFoundError):
            await service.get_client(OWNER_ID, oauth_client.client_id)
        assert not await service.verify_client(oauth_client.client_id, oauth_client.client_secret)
