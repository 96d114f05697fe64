"""Unit tests for code exchange and refresh-token rotation."""

import asyncio

import pytest
import pytest_asyncio
from conftest import OWNER_ID, REDIRECT_URI
from sqlalchemy import func, select

from trust_engine.core.exceptions import InvalidClientError, InvalidGrantError
from trust_engine.core.postgres import AsyncSessionLocal
from trust_engine.core.security import secret_hasher
from trust_engine.models.oauth_token import OAuthAccessTokenORM, OAuthRefreshTokenORM
from trust_engine.repositories.credential_store import CredentialStore
from trust_engine.schemas.oauth import TokenResponse
from trust_engine.services.authorization_code_service import AuthorizationCodeService
from trust_engine.services.oauth_client_service import OAuthClientService
from trust_engine.services.token_service import TokenService
from trust_engine.services.token_verifier import TokenVerifierService

USER_ID = "end-user-1"


@pytest.fixture
def service(store, clock) -> TokenService:
    return TokenService(store, clock)


@pytest.fixture
def verifier(store, clock) -> TokenVerifierService:
    return TokenVerifierService(store, clock)


@pytest_asyncio.fixture
async def code(store, clock, oauth_client) -> str:
    result = await AuthorizationCodeService(store, clock).issue_code(
        oauth_client.client_id, USER_ID, REDIRECT_URI, ["read"]
    )
    return result.code


async def count_tokens(store: CredentialStore) -> tuple[int, int]:
    access = await store.session.scalar(select(func.count(OAuthAccessTokenORM.id)))
    refresh = await store.session.scalar(select(func.count(OAuthRefreshTokenORM.id)))
    return access, refresh


class TestExchangeCode:
    @pytest.mark.asyncio
    async def test_exchange(self, service, verifier, oauth_client, code):
        tokens = await service.exchange_code(
            code, oauth_client.client_id, oauth_client.client_secret, REDIRECT_URI
        )

        assert tokens.token_type == "Bearer"
        assert tokens.expires_in == 3600
        assert tokens.scope == "read"
        assert tokens.access_token != tokens.refresh_token

        info = await verifier.verify_access_token(tokens.access_token)
        assert info.user_id == USER_ID
        assert info.client_id == oauth_client.client_id
        assert info.scopes == ["read"]

    @pytest.mark.asyncio
    async def test_tokens_stored_as_hashes(self, service, store, oauth_client, code):
        tokens = await service.exchange_code(
            code, oauth_client.client_id, oauth_client.client_secret, REDIRECT_URI
        )

        access = await store.access_tokens.get_by_hash(secret_hasher.hash(tokens.access_token))
        refresh = await store.refresh_tokens.get_by_hash(secret_hasher.hash(tokens.refresh_token))
        assert refresh.access_token_id == access.id

    @pytest.mark.asyncio
    async def test_code_is_single_use(self, service, store, oauth_client, code):
        await service.exchange_code(
            code, oauth_client.client_id, oauth_client.client_secret, REDIRECT_URI
        )

        with pytest.raises(InvalidGrantError):
            await service.exchange_code(
                code, oauth_client.client_id, oauth_client.client_secret, REDIRECT_URI
            )

        assert await count_tokens(store) == (1, 1)

    @pytest.mark.asyncio
    async def test_bad_client_secret(self, service, store, oauth_client, code):
        with pytest.raises(InvalidClientError):
            await service.exchange_code(code, oauth_client.client_id, "wrong", REDIRECT_URI)

        assert (await store.authorization_codes.get_by_code(code)).used is False

    @pytest.mark.asyncio
    async def test_code_of_another_client(self, service, store, clock, code):
        other = await OAuthClientService(store, clock).create_client(
            OWNER_ID, "Other", None, [REDIRECT_URI], ["read"]
        )

        with pytest.raises(InvalidGrantError):
            await service.exchange_code(code, other.client_id, other.client_secret, REDIRECT_URI)

    @pytest.mark.asyncio
    async def test_redirect_mismatch_creates_nothing(self, service, store, oauth_client, code):
        with pytest.raises(InvalidGrantError):
            await service.exchange_code(
                code,
                oauth_client.client_id,
                oauth_client.client_secret,
                "https://app.example.com/other",
            )

        assert await count_tokens(store) == (0, 0)
        # The code survives a failed exchange
        tokens = await service.exchange_code(
            code, oauth_client.client_id, oauth_client.client_secret, REDIRECT_URI
        )
        assert tokens.access_token

    @pytest.mark.asyncio
    async def test_expired_code(self, service, clock, oauth_client, code):
        clock.advance(minutes=10)

        with pytest.raises(InvalidGrantError):
            await service.exchange_code(
                code, oauth_client.client_id, oauth_client.client_secret, REDIRECT_URI
            )

    @pytest.mark.asyncio
    async def test_unknown_code(self, service, oauth_client):
        with pytest.raises(InvalidGrantError):
            await service.exchange_code(
                "0" * 64, oauth_client.client_id, oauth_client.client_secret, REDIRECT_URI
            )

    @pytest.mark.asyncio
    async def test_interleaved_exchanges(self, clock, oauth_client, code):
        """Two exchanges that both passed the checks: only the first to commit wins."""
        async with AsyncSessionLocal() as session_a, AsyncSessionLocal() as session_b:
            store_a, store_b = CredentialStore(session_a), CredentialStore(session_b)
            code_a = await store_a.authorization_codes.get_by_code(code)
            code_b = await store_b.authorization_codes.get_by_code(code)
            assert not code_a.used and not code_b.used

            async with store_a.transaction():
                assert await store_a.authorization_codes.consume(code_a.id, clock.now) is True

            async with store_b.transaction():
                assert await store_b.authorization_codes.consume(code_b.id, clock.now) is False

    @pytest.mark.asyncio
    async def test_concurrent_exchanges_issue_one_pair(self, store, clock, oauth_client, code):
        """Five clients racing the same code, each on its own session: one pair comes out."""

        async def attempt():
            async with AsyncSessionLocal() as session:
                return await TokenService(CredentialStore(session), clock).exchange_code(
                    code, oauth_client.client_id, oauth_client.client_secret, REDIRECT_URI
                )

        results = await asyncio.gather(*(attempt() for _ in range(5)), return_exceptions=True)

        issued = [r for r in results if isinstance(r, TokenResponse)]
        rejected = [r for r in results if isinstance(r, InvalidGrantError)]
        assert len(issued) == 1
        assert len(rejected) == 4
        assert await count_tokens(store) == (1, 1)


class TestRefresh:
    @pytest_asyncio.fixture
    async def tokens(self, service, oauth_client, code):
        return await service.exchange_code(
            code, oauth_client.client_id, oauth_client.client_secret, REDIRECT_URI
        )

    @pytest.mark.asyncio
    async def test_rotation(self, service, verifier, tokens):
        new = await service.refresh_access_token(tokens.refresh_token)

        assert new.access_token != tokens.access_token
        assert new.refresh_token != tokens.refresh_token
        assert new.scope == tokens.scope
        assert await verifier.verify_access_token(tokens.access_token) is None
        assert (await verifier.verify_access_token(new.access_token)).user_id == USER_ID

    @pytest.mark.asyncio
    async def test_rotated_refresh_token_is_dead(self, service, store, tokens):
        await service.refresh_access_token(tokens.refresh_token)

        with pytest.raises(InvalidGrantError):
            await service.refresh_access_token(tokens.refresh_token)

        assert await count_tokens(store) == (2, 2)

    @pytest.mark.asyncio
    async def test_client_binding(self, service, store, clock, oauth_client, tokens):
        other = await OAuthClientService(store, clock).create_client(
            OWNER_ID, "Other", None, [REDIRECT_URI], ["read"]
        )

        with pytest.raises(InvalidGrantError):
            await service.refresh_access_token(tokens.refresh_token, client_id=other.client_id)

        with pytest.raises(InvalidClientError):
            await service.refresh_access_token(
                tokens.refresh_token, client_id=oauth_client.client_id, client_secret="wrong"
            )

        new = await service.refresh_access_token(
            tokens.refresh_token,
            client_id=oauth_client.client_id,
            client_secret=oauth_client.client_secret,
        )
        assert new.access_token

    @pytest.mark.asyncio
    async def test_inactive_client(self, service, store, clock, oauth_client, tokens):
        await OAuthClientService(store, clock).update_client(
            OWNER_ID, oauth_client.client_id, {"is_active": False}
        )

        with pytest.raises(InvalidGrantError):
            await service.refresh_access_token(tokens.refresh_token)

    @pytest.mark.asyncio
    async def test_expired_refresh_token(self, service, clock, tokens):
        clock.advance(days=30)

        with pytest.raises(InvalidGrantError):
            await service.refresh_access_token(tokens.refresh_token)

    @pytest.mark.asyncio
    async def test_refresh_after_access_expiry(self, service, clock, tokens):
        """Test that an expired access token can still be renewed with its refresh token."""
        clock.advance(seconds=3600)

        new = await service.refresh_access_token(tokens.refresh_token)

        assert new.access_token

    @pytest.mark.asyncio
    async def test_interleaved_rotations(self, clock, tokens):
        token_hash = secret_hasher.hash(tokens.refresh_token)
        async with AsyncSessionLocal() as session_a, AsyncSessionLocal() as session_b:
            store_a, store_b = CredentialStore(session_a), CredentialStore(session_b)
            record_a = await store_a.refresh_tokens.get_by_hash(token_hash)
            record_b = await store_b.refresh_tokens.get_by_hash(token_hash)

            async with store_a.transaction():
                assert await store_a.refresh_tokens.revoke_if_active(record_a.id, clock.now)

            async with store_b.transaction():
                assert not await store_b.refresh_tokens.revoke_if_active(record_b.id, clock.now)
