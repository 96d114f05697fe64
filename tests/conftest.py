"""Global pytest fixtures for testing."""

import os
import tempfile
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

# Settings are read at import time, so the test environment has to exist first
_TEST_DB_DIR = tempfile.mkdtemp(prefix="trust_engine_test_")
os.environ["DATABASE_URL"] = os.getenv(
    "TEST_DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_DB_DIR}/trust_engine_test.db"
)
os.environ["DATABASE_USE_NULL_POOL"] = "true"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-at-least-32-characters-long")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from trust_engine import models  # noqa: E402, F401
from trust_engine.core.postgres import AsyncSessionLocal, Base, engine  # noqa: E402
from trust_engine.core.security import token_manager  # noqa: E402
from trust_engine.main import app  # noqa: E402
from trust_engine.repositories.credential_store import CredentialStore  # noqa: E402
from trust_engine.schemas.oauth import CreatedOAuthClient  # noqa: E402
from trust_engine.services.oauth_client_service import OAuthClientService  # noqa: E402

# Safety check: ensure tests only run on a test database
if "test" not in os.environ["DATABASE_URL"]:
    raise RuntimeError(
        f"Safety check failed: DATABASE_URL must point to a test database. "
        f"Current: {os.environ['DATABASE_URL']}"
    )

OWNER_ID = "user-123"
OTHER_OWNER_ID = "user-456"
REDIRECT_URI = "https://app.example.com/callback"


class FakeClock:
    """Settable clock handed to services in place of utcnow."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 3, 2, 9, 30, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def auth_headers_for(user_id: str) -> dict[str, str]:
    """Platform session token as issued by the platform login."""
    token = token_manager.create_access_token({"sub": user_id})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh tables for every test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
def store(db_session: AsyncSession) -> CredentialStore:
    return CredentialStore(db_session)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def client(database: None) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app; requests use the test database directly."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def owner_headers() -> dict[str, str]:
    return auth_headers_for(OWNER_ID)


@pytest.fixture
def other_owner_headers() -> dict[str, str]:
    return auth_headers_for(OTHER_OWNER_ID)


@pytest_asyncio.fixture
async def oauth_client(store: CredentialStore, clock: FakeClock) -> CreatedOAuthClient:
    """A registered client allowed to request `read` and `write`."""
    service = OAuthClientService(store, clock)
    return await service.create_client(
        OWNER_ID,
        "Acme Integration",
        "Syncs opportunities into Acme",
        [REDIRECT_URI, "https://app.example.com/other"],
        ["read", "write"],
    )
