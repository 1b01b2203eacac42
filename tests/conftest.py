"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL.  Every test gets a fresh ``Database`` handle and
therefore a fresh, empty schema.
"""

from typing import AsyncGenerator

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from rideflow.domain.workflow import RideWorkflowEngine
from rideflow.infrastructure.database import Database
from rideflow.infrastructure.repositories import RideRepository

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

# Colombo -> Kandy, well above the 25 km threshold
COLOMBO = {"lat": 6.9271, "lng": 79.8612, "address": "Colombo Fort"}
KANDY = {"lat": 7.2906, "lng": 80.6337, "address": "Kandy"}

# Two points a few km apart inside Colombo
BAMBALAPITIYA = {"lat": 6.8897, "lng": 79.8567, "address": "Bambalapitiya"}
NUGEGODA = {"lat": 6.8649, "lng": 79.8997, "address": "Nugegoda"}


def actor(actor_id: str, role: str) -> dict:
    """Identity headers for API calls."""
    return {"X-Actor-Id": actor_id, "X-Actor-Role": role}


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[Database, None]:
    """Connect, create tables, yield the handle, then dispose."""
    db = Database(TEST_DB_URL)
    await db.connect()
    await db.create_all()
    yield db
    await db.disconnect()


@pytest_asyncio.fixture
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    async with database.session() as session:
        yield session


@pytest_asyncio.fixture
async def repo(db_session: AsyncSession) -> RideRepository:
    return RideRepository(db_session)


@pytest_asyncio.fixture
async def engine(repo: RideRepository) -> RideWorkflowEngine:
    return RideWorkflowEngine(repo)
