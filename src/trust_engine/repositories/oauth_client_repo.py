from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from trust_engine.models.oauth_client import OAuthClientORM
from trust_engine.models.oauth_token import (
    OAuthAccessTokenORM,
    OAuthAuthorizationCodeORM,
    OAuthRefreshTokenORM,
)
from trust_engine.repositories.postgres_repo import PostgresRepository


class OAuthClientRepository(PostgresRepository[OAuthClientORM]):
    def __init__(self, session: AsyncSession):
        super().__init__(OAuthClientORM, session)

    async def get_by_client_id(self, client_id: str) -> OAuthClientORM | None:
        """Find a registered client by its public client_id."""
        query = (
            select(self.model)
            .where(self.model.client_id == client_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_for_owner(self, owner_id: str, client_id: str) -> OAuthClientORM | None:
        """Same as get_by_client_id, but only if the client belongs to owner_id."""
        query = (
            select(self.model)
            .where(self.model.client_id == client_id, self.model.owner_id == owner_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_by_owner(self, owner_id: str) -> list[OAuthClientORM]:
        query = (
            select(self.model)
            .where(self.model.owner_id == owner_id)
            .order_by(self.model.created_at.desc())
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def delete_with_grants(self, client: OAuthClientORM) -> None:
        """Hard-delete a client together with every code and token issued to it."""
        access_token_ids = select(OAuthAccessTokenORM.id).where(
            OAuthAccessTokenORM.client_id == client.client_id
        )
        stale = [
            delete(OAuthRefreshTokenORM).where(
                OAuthRefreshTokenORM.access_token_id.in_(access_token_ids)
            ),
            delete(OAuthAccessTokenORM).where(OAuthAccessTokenORM.client_id == client.client_id),
            delete(OAuthAuthorizationCodeORM).where(
                OAuthAuthorizationCodeORM.client_id == client.client_id
            ),
        ]
        for statement in stale:
            await self.session.execute(
                statement.execution_options(synchronize_session=False)
            )
        await self.session.delete(client)
        await self.session.flush()
