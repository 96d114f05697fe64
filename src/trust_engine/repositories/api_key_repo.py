import uuid
from datetime import datetime

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from trust_engine.models.api_key import ApiKeyORM
from trust_engine.repositories.postgres_repo import PostgresRepository


class ApiKeyRepository(PostgresRepository[ApiKeyORM]):
    def __init__(self, session: AsyncSession):
        super().__init__(ApiKeyORM, session)

    async def get_active_by_key_hash(self, key_hash: str, now: datetime) -> ApiKeyORM | None:
        """Look up an active, non-expired key by its SHA-256 hash."""
        query = (
            select(self.model)
            .where(
                self.model.key_hash == key_hash,
                self.model.is_active == True,  # noqa: E712
                or_(self.model.expires_at.is_(None), self.model.expires_at > now),
            )
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_for_owner(self, owner_id: str, key_id: uuid.UUID) -> ApiKeyORM | None:
        query = (
            select(self.model)
            .where(self.model.id == key_id, self.model.owner_id == owner_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_by_owner(self, owner_id: str) -> list[ApiKeyORM]:
        query = (
            select(self.model)
            .where(self.model.owner_id == owner_id)
            .order_by(self.model.created_at.desc())
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def touch_last_used(self, key_id: uuid.UUID, now: datetime) -> None:
        """Update last_used_at after a successful verification."""
        await self.update_where(key_id, [], {"last_used_at": now})

    async def deactivate(self, key_id: uuid.UUID) -> bool:
        """Flip is_active to False. Returns False if the key was already inactive."""
        return await self.update_where(
            key_id,
            [self.model.is_active == True],  # noqa: E712
            {"is_active": False},
        )
