"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool, NullPool

from fleetpay.app.main import app
from fleetpay.app.db.session import get_db, get_session_factory, Base
from fleetpay.app.domain.settlement.driver_locks import driver_locks
from fleetpay.tests.factories import create_partner, create_vehicle, create_driver

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Event handler to enable foreign keys for SQLite
from sqlalchemy import event
from sqlalchemy.pool import Pool

@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


@pytest.fixture(scope="session", autouse=True)
def apply_overrides():
    """Apply overrides once for the session."""

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    def override_get_session_factory():
        return TestingSessionLocal

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = override_get_session_factory
    yield

    app.dependency_overrides = {}


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def fresh_driver_locks():
    """asyncio locks are bound to the loop that first awaits them."""
    driver_locks.reset()
    yield
    driver_locks.reset()


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def session_factory():
    """The factory batch runs use to open one session per driver."""
    return TestingSessionLocal


# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
async def file_session_factory(tmp_path):
    """
    Session factory over an on-disk SQLite database where every session gets
    its own connection. Needed when several sessions run concurrently.
    """
    file_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'fleetpay.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )
    async with file_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(file_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    await file_engine.dispose()


@pytest.fixture
async def fleet(db_session):
    """
    One partner with one ACTIVE driver (25% commission, weekly) on a vehicle
    costing 1200.00 rent and 300.00 insurance per month.
    """
    partner = await create_partner(db_session)
    vehicle = await create_vehicle(db_session, partner)
    driver = await create_driver(db_session, partner, vehicle)
    await db_session.commit()
    return {"partner": partner, "vehicle": vehicle, "driver": driver}
