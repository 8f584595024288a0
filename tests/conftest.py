"""
Pytest configuration and fixtures

Every test gets its own SQLite file database and an in-process fake Redis,
so nothing leaks between tests and no external services are needed.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from datetime import date

import pytest
import fakeredis.aioredis
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

import app.models  # noqa: F401
from app.core.cache import RedisCache
from app.core.database import Base, get_db
from app.core.redis_lifecyle import get_cache
from app.core.security import create_access_token
from app.main import app
from app.models.trips.trip_model import Trip, TripStatus
from app.services.scheduling.preference_service import PreferenceService
from app.services.scheduling.consensus_service import ConsensusService
from app.services.trips.trip_service import TripService
from app.schemas.trip.trip_schema import TripCreate

LEADER_ID = 1
MEMBER_A = 2
MEMBER_B = 3
MEMBER_C = 4


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'scheduler.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def cache():
    client = fakeredis.aioredis.FakeRedis(decode_responses=True)
    yield RedisCache(client)
    await client.flushall()


@pytest.fixture
def trip_service(cache):
    return TripService(cache)


@pytest.fixture
def prefs(cache):
    return PreferenceService(cache)


@pytest.fixture
def consensus(cache):
    return ConsensusService(cache)


@pytest.fixture
def june_trip_data():
    """2025-06-01..2025-06-10, 3-day trip: valid starts 06-01..06-08."""
    return TripCreate(
        title="Lake weekend",
        start_bound=date(2025, 6, 1),
        end_bound=date(2025, 6, 10),
        trip_length_days=3,
    )


@pytest.fixture
async def june_trip(db, trip_service, june_trip_data) -> Trip:
    return await trip_service.create_trip(db, june_trip_data, LEADER_ID)


@pytest.fixture
async def voting_trip(db, prefs, consensus, june_trip) -> Trip:
    """June trip with A and B's picks in and the ballot open."""
    await prefs.submit_pick(db, june_trip.id, MEMBER_A, 1, date(2025, 6, 3))
    await prefs.submit_pick(db, june_trip.id, MEMBER_B, 1, date(2025, 6, 3))
    await prefs.submit_pick(db, june_trip.id, MEMBER_B, 2, date(2025, 6, 1))
    await consensus.open_voting(db, june_trip.id, LEADER_ID, k=2)
    assert june_trip.status == TripStatus.voting
    return june_trip


def auth_headers(member_id: int) -> dict:
    token = create_access_token({"sub": str(member_id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def client(session_factory, cache):
    async def _get_db():
        async with session_factory() as session:
            yield session

    async def _get_cache():
        yield cache

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_cache] = _get_cache
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
