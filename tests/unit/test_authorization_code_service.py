"""Unit tests for the authorize step of the authorization-code grant."""

from datetime import timedelta

import pytest
from conftest import OWNER_ID, REDIRECT_URI

from trust_engine.core.exceptions import (
    InvalidClientError,
    InvalidRedirectUriError,
    InvalidScopeError,
    ValidationError,
)
from trust_engine.services.authorization_code_service import AuthorizationCodeService
from trust_engine.services.oauth_client_service import OAuthClientService

USER_ID = "end-user-1"


@pytest.fixture
def service(store, clock) -> AuthorizationCodeService:
    return AuthorizationCodeService(store, clock)


class TestDescribeGrant:
    @pytest.mark.asyncio
    async def test_pending_grant(self, service, oauth_client):
        grant = await service.describe_grant(
            oauth_client.client_id, REDIRECT_URI, ["read"], state="xyz"
        )

        assert grant.client_name == "Acme Integration"
        assert grant.client_description == "Syncs opportunities into Acme"
        assert grant.scopes == ["read"]
        assert grant.state == "xyz"

    @pytest.mark.asyncio
    async def test_writes_nothing(self, service, store, oauth_client):
        await service.describe_grant(oauth_client.client_id, REDIRECT_URI, ["read"])

        assert await store.authorization_codes.get_all() == []


class TestIssueCode:
    @pytest.mark.asyncio
    async def test_issue(self, service, store, clock, oauth_client):
        result = await service.issue_code(
            oauth_client.client_id, USER_ID, REDIRECT_URI, ["read", "write"]
        )

        assert len(result.code) == 64
        assert result.expires_at == clock.now + timedelta(minutes=10)

        row = await store.authorization_codes.get_by_code(result.code)
        assert row.user_id == USER_ID
        assert row.redirect_uri == REDIRECT_URI
        assert row.scopes == ["read", "write"]
        assert row.used is False

    @pytest.mark.asyncio
    async def test_codes_are_unique(self, service, oauth_client):
        first = await service.issue_code(oauth_client.client_id, USER_ID, REDIRECT_URI, ["read"])
        second = await service.issue_code(oauth_client.client_id, USER_ID, REDIRECT_URI, ["read"])

        assert first.code != second.code


class TestPreconditions:
    @pytest.mark.asyncio
    async def test_unknown_client(self, service):
        with pytest.raises(InvalidClientError):
            await service.issue_code("opx_client_nope", USER_ID, REDIRECT_URI, ["read"])

    @pytest.mark.asyncio
    async def test_inactive_client(self, service, store, clock, oauth_client):
        await OAuthClientService(store, clock).update_client(
            OWNER_ID, oauth_client.client_id, {"is_active": False}
        )

        with pytest.raises(InvalidClientError):
            await service.issue_code(oauth_client.client_id, USER_ID, REDIRECT_URI, ["read"])

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "redirect_uri",
        [
            "https://evil.example.com/callback",
            REDIRECT_URI + "/",
            REDIRECT_URI + "?next=/admin",
        ],
    )
    async def test_redirect_must_match_verbatim(self, service, store, oauth_client, redirect_uri):
        with pytest.raises(InvalidRedirectUriError):
            await service.issue_code(oauth_client.client_id, USER_ID, redirect_uri, ["read"])

        assert await store.authorization_codes.get_all() == []

    @pytest.mark.asyncio
    async def test_no_scopes(self, service, oauth_client):
        with pytest.raises(ValidationError):
            await service.issue_code(oauth_client.client_id, USER_ID, REDIRECT_URI, [])

    @pytest.mark.asyncio
    async def test_unregistered_scope(self, service, oauth_client):
        with pytest.raises(InvalidScopeError) as exc_info:
            await service.issue_code(
                oauth_client.client_id, USER_ID, REDIRECT_URI, ["read", "admin"]
            )

        assert exc_info.value.details["invalid_scopes"] == ["admin"]

    @pytest.mark.asyncio
    async def test_client_checked_before_redirect(self, service):
        """Test that an unknown client is reported even when the redirect is bad too."""
        with pytest.raises(InvalidClientError):
            await service.describe_grant("opx_client_nope", "https://evil.example.com", [])
