import uuid
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from trust_engine.models.api_usage_log import ApiUsageLogORM
from trust_engine.repositories.postgres_repo import PostgresRepository


class ApiUsageLogRepository(PostgresRepository[ApiUsageLogORM]):
    def __init__(self, session: AsyncSession):
        super().__init__(ApiUsageLogORM, session)

    async def count_since(self, api_key_id: uuid.UUID, since: datetime) -> int:
        """Rows logged strictly after `since`."""
        query = select(func.count(self.model.id)).where(
            self.model.api_key_id == api_key_id,
            self.model.created_at > since,
        )
        result = await self.session.execute(query)
        return int(result.scalar_one())

    async def list_between(
        self,
        api_key_id: uuid.UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[ApiUsageLogORM]:
        query = select(self.model).where(self.model.api_key_id == api_key_id)
        if start is not None:
            query = query.where(self.model.created_at >= start)
        if end is not None:
            query = query.where(self.model.created_at <= end)
        result = await self.session.execute(query.order_by(self.model.created_at))
        return list(result.scalars().all())
