from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from trust_engine.core.postgres import Base

T = TypeVar("T", bound=Base)


class PostgresRepository(Generic[T]):
    def __init__(self, model: type[T], session: AsyncSession):
        self.model = model
        self.session = session

    async def get(self, id: Any) -> T | None:
        query = (
            select(self.model)
            .where(self.model.id == id)  # type: ignore[attr-defined]
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_all(self, skip: int = 0, limit: int = 100) -> Sequence[T]:
        query = select(self.model).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return result.scalars().all()

    async def create(self, obj_in: Any) -> T:
        db_obj = self.model(**obj_in)
        self.session.add(db_obj)
        await self.session.flush()
        await self.session.refresh(db_obj)
        return db_obj

    async def update(self, id: Any, obj_in: Any) -> T | None:
        query = (
            update(self.model)
            .where(self.model.id == id)  # type: ignore[attr-defined]
            .values(**obj_in)
            .returning(self.model)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def update_where(self, id: Any, conditions: Sequence[Any], obj_in: Any) -> bool:
        """
        Compare-and-swap: update the row only while every condition still holds.

        Returns False when no row matched, i.e. another transaction got there
        first or the row never satisfied the predicate. In-session objects are
        not synchronized; readers use populate_existing.
        """
        query = (
            update(self.model)
            .where(self.model.id == id, *conditions)  # type: ignore[attr-defined]
            .values(**obj_in)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(query)
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def delete(self, id: Any) -> bool:
        query = delete(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
        result = await self.session.execute(query)
        return result.rowcount > 0  # type: ignore[attr-defined]
