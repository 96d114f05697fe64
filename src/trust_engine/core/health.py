from sqlalchemy import text

from trust_engine.core.postgres import AsyncSessionLocal


async def check_database() -> None:
    async with AsyncSessionLocal() as session:
        await session.execute(text("SELECT 1"))
