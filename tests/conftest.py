"""Shared test fixtures."""

import os

# Must be set before ordefy.config is imported: SQLite URLs and in-memory rate limits
os.environ.setdefault("ORDEFY_LOCAL_MODE", "1")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ordefy.db.base import Base
# Import all models to register with Base.metadata
import ordefy.db.models  # noqa: F401
from ordefy.db.models.integration import ShopifyIntegrationRow

from factories import ADMIN_KEY, SHOP_DOMAIN, STORE_ID, WEBHOOK_SECRET


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def reset_rate_limits():
    from ordefy.api.middleware.rate_limit import limiter

    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def app(db_engine, session_factory):
    """Create a test application instance with in-memory DB."""
    from ordefy.main import create_app

    _app = create_app()
    _app.state.db_engine = db_engine
    _app.state.db_session_factory = session_factory
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def integration(session_factory):
    """An active integration with its own webhook secret."""
    async with session_factory() as session:
        row = ShopifyIntegrationRow(
            integration_id="int_demo",
            store_id=STORE_ID,
            shop_domain=SHOP_DOMAIN,
            webhook_secret=WEBHOOK_SECRET,
            status="active",
        )
        session.add(row)
        await session.commit()
    return row


@pytest.fixture
def admin_key(monkeypatch):
    from ordefy.config import settings

    monkeypatch.setattr(settings, "admin_api_key", ADMIN_KEY)
    return {"X-Admin-Key": ADMIN_KEY}
