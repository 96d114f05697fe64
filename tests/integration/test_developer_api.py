"""Integration tests for the /developer management endpoints."""

import uuid

import pytest
from httpx import AsyncClient

API_KEYS = "/api/v1/developer/api-keys"
CLIENTS = "/api/v1/developer/oauth/clients"
PRINCIPAL = "/api/v1/public/principal"


async def create_key(client: AsyncClient, headers: dict[str, str], **overrides) -> dict:
    payload = {"name": "CI key", "scopes": ["read"], **overrides}
    response = await client.post(API_KEYS, json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestDeveloperAuth:
    """Management routes need a platform session."""

    @pytest.mark.asyncio
    async def test_missing_session(self, client: AsyncClient):
        response = await client.get(API_KEYS)

        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "error": "UNAUTHORIZED",
            "message": "Not authenticated",
        }

    @pytest.mark.asyncio
    async def test_garbage_session(self, client: AsyncClient):
        response = await client.get(API_KEYS, headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_api_key_is_not_a_session(self, client: AsyncClient, owner_headers):
        created = await create_key(client, owner_headers)

        response = await client.get(
            API_KEYS, headers={"Authorization": f"Bearer {created['key']}"}
        )

        assert response.status_code == 401


class TestApiKeysApi:
    @pytest.mark.asyncio
    async def test_create(self, client: AsyncClient, owner_headers):
        response = await client.post(
            API_KEYS,
            json={"name": "CI key", "scopes": ["read", "write"], "rate_limit": 100},
            headers=owner_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Store this key securely. It will not be shown again."

        data = body["data"]
        assert data["key"].startswith("opx_")
        assert data["key_prefix"] == data["key"][:12]
        assert data["scopes"] == ["read", "write"]
        assert data["rate_limit"] == 100
        assert data["rate_limit_window"] == 3600
        assert "key_hash" not in data

    @pytest.mark.asyncio
    async def test_create_validation(self, client: AsyncClient, owner_headers):
        response = await client.post(
            API_KEYS, json={"name": "", "rate_limit": 0}, headers=owner_headers
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "VALIDATION_ERROR"
        assert set(body["details"]["fields"]) == {"name", "rate_limit"}

    @pytest.mark.asyncio
    async def test_list_never_shows_key(self, client: AsyncClient, owner_headers):
        created = await create_key(client, owner_headers)

        response = await client.get(API_KEYS, headers=owner_headers)

        assert response.status_code == 200
        items = response.json()["data"]
        assert [item["id"] for item in items] == [created["id"]]
        assert "key" not in items[0]

    @pytest.mark.asyncio
    async def test_keys_are_private_to_owner(
        self, client: AsyncClient, owner_headers, other_owner_headers
    ):
        created = await create_key(client, owner_headers)

        response = await client.get(f"{API_KEYS}/{created['id']}", headers=other_owner_headers)
        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"

        response = await client.delete(f"{API_KEYS}/{created['id']}", headers=other_owner_headers)
        assert response.status_code == 404

        response = await client.get(API_KEYS, headers=other_owner_headers)
        assert response.json()["data"] == []

    @pytest.mark.asyncio
    async def test_update(self, client: AsyncClient, owner_headers):
        created = await create_key(client, owner_headers)

        response = await client.patch(
            f"{API_KEYS}/{created['id']}",
            json={"name": "Renamed", "scopes": ["read", "write"]},
            headers=owner_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Renamed"
        assert data["scopes"] == ["read", "write"]

    @pytest.mark.asyncio
    async def test_update_cannot_reactivate(self, client: AsyncClient, owner_headers):
        created = await create_key(client, owner_headers)

        response = await client.patch(
            f"{API_KEYS}/{created['id']}", json={"is_active": True}, headers=owner_headers
        )

        assert response.status_code == 400
        assert response.json()["details"]["fields"] == ["is_active"]

    @pytest.mark.asyncio
    async def test_unknown_key(self, client: AsyncClient, owner_headers):
        response = await client.get(f"{API_KEYS}/{uuid.uuid4()}", headers=owner_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_revoke(self, client: AsyncClient, owner_headers):
        created = await create_key(client, owner_headers)

        response = await client.delete(f"{API_KEYS}/{created['id']}", headers=owner_headers)
        assert response.status_code == 200
        assert response.json() == {"success": True, "data": None, "message": "API key revoked"}

        # Idempotent
        response = await client.delete(f"{API_KEYS}/{created['id']}", headers=owner_headers)
        assert response.status_code == 200

        response = await client.get(PRINCIPAL, headers={"X-API-Key": created["key"]})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_rotate(self, client: AsyncClient, owner_headers):
        created = await create_key(client, owner_headers)

        response = await client.post(f"{API_KEYS}/{created['id']}/rotate", headers=owner_headers)

        assert response.status_code == 200
        rotated = response.json()["data"]
        assert rotated["id"] != created["id"]
        assert rotated["name"] == created["name"]

        old = await client.get(PRINCIPAL, headers={"X-API-Key": created["key"]})
        new = await client.get(PRINCIPAL, headers={"X-API-Key": rotated["key"]})
        assert old.status_code == 401
        assert new.status_code == 200

        # The old key cannot be rotated twice
        response = await client.post(f"{API_KEYS}/{created['id']}/rotate", headers=owner_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_usage_and_rate_limit_status(self, client: AsyncClient, owner_headers):
        created = await create_key(client, owner_headers, rate_limit=10, rate_limit_window=60)

        for _ in range(2):
            response = await client.get(PRINCIPAL, headers={"X-API-Key": created["key"]})
            assert response.status_code == 200

        response = await client.get(f"{API_KEYS}/{created['id']}/usage", headers=owner_headers)
        assert response.status_code == 200
        stats = response.json()["data"]
        assert stats["total_requests"] == 2
        assert stats["success_count"] == 2
        assert stats["failure_count"] == 0
        assert stats["by_endpoint"] == {PRINCIPAL: 2}
        assert sum(stats["by_day"].values()) == 2

        response = await client.get(
            f"{API_KEYS}/{created['id']}/rate-limit", headers=owner_headers
        )
        assert response.status_code == 200
        status = response.json()["data"]
        assert status["allowed"] is True
        assert status["limit"] == 10
        assert status["remaining"] == 8

    @pytest.mark.asyncio
    async def test_usage_inverted_range(self, client: AsyncClient, owner_headers):
        created = await create_key(client, owner_headers)

        response = await client.get(
            f"{API_KEYS}/{created['id']}/usage",
            params={"start_date": "2026-02-01T00:00:00Z", "end_date": "2026-01-01T00:00:00Z"},
            headers=owner_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"


class TestOAuthClientsApi:
    @pytest.mark.asyncio
    async def test_create(self, client: AsyncClient, owner_headers):
        response = await client.post(
            CLIENTS,
            json={
                "name": "Acme",
                "description": "CRM sync",
                "redirect_uris": ["https://acme.example/cb"],
                "scopes": ["read"],
            },
            headers=owner_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Store this client secret securely. It will not be shown again."
        assert body["data"]["client_id"].startswith("opx_client_")
        assert body["data"]["client_secret"]
        assert "client_secret_hash" not in body["data"]

    @pytest.mark.asyncio
    async def test_create_rejects_bad_redirect(self, client: AsyncClient, owner_headers):
        response = await client.post(
            CLIENTS,
            json={"name": "Acme", "redirect_uris": ["not-a-url"], "scopes": ["read"]},
            headers=owner_headers,
        )

        assert response.status_code == 400
        assert response.json()["details"]["fields"] == ["redirect_uris"]

    @pytest.mark.asyncio
    async def test_crud(self, client: AsyncClient, owner_headers, other_owner_headers):
        response = await client.post(
            CLIENTS,
            json={"name": "Acme", "redirect_uris": ["https://acme.example/cb"], "scopes": []},
            headers=owner_headers,
        )
        client_id = response.json()["data"]["client_id"]
        url = f"{CLIENTS}/{client_id}"

        response = await client.get(CLIENTS, headers=owner_headers)
        assert [c["client_id"] for c in response.json()["data"]] == [client_id]
        assert "client_secret" not in response.json()["data"][0]

        response = await client.patch(
            url, json={"name": "Acme v2", "is_active": False}, headers=owner_headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Acme v2"
        assert response.json()["data"]["is_active"] is False

        response = await client.get(url, headers=other_owner_headers)
        assert response.status_code == 404

        response = await client.delete(url, headers=owner_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "OAuth client deleted"

        response = await client.get(url, headers=owner_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_revoke_tokens_unknown_client(self, client: AsyncClient, owner_headers):
        response = await client.post(
            f"{CLIENTS}/opx_client_missing/revoke-tokens", headers=owner_headers
        )

        assert response.status_code == 404
