"""Shared fixtures: fresh in-memory SQLite per test, API client with get_db overridden."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.security import create_access_token  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.session import get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.schemas.user import CallerIdentity, UserCreate  # noqa: E402
from app.services import feed_service  # noqa: E402
from app.services.auth_service import create_identity, user_to_caller  # noqa: E402


@pytest.fixture
async def test_engine():
    # StaticPool: every session shares the one in-memory database
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


async def _register(db, name: str, email: str, password: str = "secret") -> CallerIdentity:
    user = await create_identity(db, UserCreate(name=name, email=email, password=password))
    return user_to_caller(user)


@pytest.fixture
async def alice(db) -> CallerIdentity:
    return await _register(db, "Alice", "a@x.com")


@pytest.fixture
async def bob(db) -> CallerIdentity:
    return await _register(db, "Bob", "b@x.com")


@pytest.fixture
async def post(db, alice):
    return await feed_service.create_post(db, alice, "hello")


@pytest.fixture
def auth_header():
    """Build a bearer header for a user id."""
    def _header(user_id) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}
    return _header
