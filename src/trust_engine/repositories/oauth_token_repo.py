import uuid
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from trust_engine.models.oauth_token import (
    OAuthAccessTokenORM,
    OAuthAuthorizationCodeORM,
    OAuthRefreshTokenORM,
)
from trust_engine.repositories.postgres_repo import PostgresRepository


class AuthorizationCodeRepository(PostgresRepository[OAuthAuthorizationCodeORM]):
    def __init__(self, session: AsyncSession):
        super().__init__(OAuthAuthorizationCodeORM, session)

    async def get_by_code(self, code: str) -> OAuthAuthorizationCodeORM | None:
        query = (
            select(self.model)
            .where(self.model.code == code)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def consume(self, code_id: uuid.UUID, now: datetime) -> bool:
        """
        Mark a code used if, and only if, it is still unused and unexpired.

        This conditional UPDATE is the commit point of a token exchange: of
        any number of concurrent exchanges exactly one sees rowcount == 1.
        """
        return await self.update_where(
            code_id,
            [self.model.used == False, self.model.expires_at > now],  # noqa: E712
            {"used": True},
        )


class AccessTokenRepository(PostgresRepository[OAuthAccessTokenORM]):
    def __init__(self, session: AsyncSession):
        super().__init__(OAuthAccessTokenORM, session)

    async def get_by_hash(self, token_hash: str) -> OAuthAccessTokenORM | None:
        query = (
            select(self.model)
            .where(self.model.token_hash == token_hash)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_valid_by_hash(self, token_hash: str, now: datetime) -> OAuthAccessTokenORM | None:
        """Unrevoked and unexpired, or nothing."""
        query = (
            select(self.model)
            .where(
                self.model.token_hash == token_hash,
                self.model.revoked == False,  # noqa: E712
                self.model.expires_at > now,
            )
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def revoke(self, token_id: uuid.UUID) -> bool:
        return await self.update_where(
            token_id,
            [self.model.revoked == False],  # noqa: E712
            {"revoked": True},
        )

    async def revoke_all_for_client(self, client_id: str) -> int:
        """Revoke every live access token of a client; returns how many flipped."""
        result = await self.session.execute(
            update(self.model)
            .where(
                self.model.client_id == client_id,
                self.model.revoked == False,  # noqa: E712
            )
            .values(revoked=True)
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount)  # type: ignore[attr-defined]


class RefreshTokenRepository(PostgresRepository[OAuthRefreshTokenORM]):
    def __init__(self, session: AsyncSession):
        super().__init__(OAuthRefreshTokenORM, session)

    async def get_by_hash(self, token_hash: str) -> OAuthRefreshTokenORM | None:
        query = (
            select(self.model)
            .where(self.model.token_hash == token_hash)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_access_token_id(self, access_token_id: uuid.UUID) -> OAuthRefreshTokenORM | None:
        query = (
            select(self.model)
            .where(self.model.access_token_id == access_token_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def revoke_if_active(self, token_id: uuid.UUID, now: datetime) -> bool:
        """
        Conditional revoke used as the commit point of a rotation.

        Only an unrevoked, unexpired refresh token flips; a racing second
        rotation of the same token gets False.
        """
        return await self.update_where(
            token_id,
            [self.model.revoked == False, self.model.expires_at > now],  # noqa: E712
            {"revoked": True},
        )

    async def revoke(self, token_id: uuid.UUID) -> bool:
        return await self.update_where(
            token_id,
            [self.model.revoked == False],  # noqa: E712
            {"revoked": True},
        )

    async def revoke_all_for_client(self, client_id: str) -> int:
        access_token_ids = select(OAuthAccessTokenORM.id).where(
            OAuthAccessTokenORM.client_id == client_id
        )
        result = await self.session.execute(
            update(self.model)
            .where(
                self.model.access_token_id.in_(access_token_ids),
                self.model.revoked == False,  # noqa: E712
            )
            .values(revoked=True)
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount)  # type: ignore[attr-defined]
