"""Shared test fixtures: in-memory SQLite DB, async session, cache, test client."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import courseflow.models  # noqa: F401
from courseflow.dependencies import get_cache, get_db
from courseflow.main import app
from courseflow.models.base import Base
from courseflow.services.cache import TTLCache
from sqlite_engine import create_test_engine

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_test_engine(TEST_DATABASE_URL)

test_session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """Yield a test DB session."""
    async with test_session_factory() as session:
        yield session


class FakeClock:
    """Manually advanced clock for cache TTL tests (seconds)."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache:
    """A fresh cache per test, driven by the fake clock."""
    return TTLCache(clock=clock)


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, cache: TTLCache) -> AsyncClient:
    """Yield an httpx AsyncClient wired to the test DB and cache."""

    async def _override_get_db():
        yield db_session
        await db_session.commit()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_cache] = lambda: cache
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
