from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from trust_engine.core.config import settings

engine_options: dict[str, Any] = {"future": True, "echo": settings.DEBUG}
if settings.DATABASE_USE_NULL_POOL:
    engine_options["poolclass"] = NullPool
else:
    engine_options["pool_size"] = settings.DATABASE_POOL_SIZE
    engine_options["max_overflow"] = settings.DATABASE_MAX_OVERFLOW

engine = create_async_engine(settings.DATABASE_URL, **engine_options)

# Async session factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass

