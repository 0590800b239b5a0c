"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  The production models are portable (``Uuid``
and ``JSON`` columns, no PostGIS), so the real metadata is created as-is.
"""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ridecore.infrastructure.database import Base
from ridecore.infrastructure.models import DriverProfileModel, UserModel


# ── Test DB (SQLite in-memory) ────────────────────────────────────────

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(TEST_DB_URL, echo=False)
TestSessionFactory = async_sessionmaker(
    test_engine, class_=AsyncSession, expire_on_commit=False
)


# ── Seed helpers ──────────────────────────────────────────────────────


async def add_rider(session: AsyncSession, name: str = "Test Rider") -> UserModel:
    user = UserModel(id=uuid.uuid4(), name=name, phone=f"+374{uuid.uuid4().hex[:9]}")
    session.add(user)
    await session.commit()
    return user


async def add_driver(
    session: AsyncSession,
    name: str = "Test Driver",
    *,
    approved: bool = True,
    car: str = "Toyota Camry",
    plate: str = "35 OO 123",
    created_at: Optional[datetime] = None,
) -> UserModel:
    user = UserModel(
        id=uuid.uuid4(),
        name=name,
        phone=f"+374{uuid.uuid4().hex[:9]}",
        is_driver=True,
        created_at=created_at or datetime.now(timezone.utc),
    )
    session.add(user)
    await session.flush()
    session.add(
        DriverProfileModel(
            user_id=user.id, approved=approved, car_model=car, plate_number=plate
        )
    )
    await session.commit()
    return user


class RecordingHub:
    """Stands in for ``RealtimeHub``; records what would have been pushed."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.events: list[tuple[uuid.UUID, str, dict]] = []
        self.locations: list[tuple[uuid.UUID, uuid.UUID, float, float]] = []

    async def notify(self, order_id, event, payload=None) -> int:
        if self.fail:
            raise RuntimeError("hub down")
        self.events.append((order_id, event, payload or {}))
        return 1

    async def broadcast_location(self, order_id, sender_id, lat, lng) -> int:
        if self.fail:
            raise RuntimeError("hub down")
        self.locations.append((order_id, sender_id, lat, lng))
        return 1

    def event_names(self) -> list[str]:
        return [name for _, name, _ in self.events]


class StalledTransport:
    """A peer that accepted the socket and then stopped reading."""

    def __init__(self):
        self.closed = False
        self._never = asyncio.Event()

    async def send(self, data: bytes) -> None:
        await self._never.wait()

    async def receive(self):
        await self._never.wait()

    async def close(self) -> None:
        self.closed = True


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Create tables, hand out the session factory, then drop everything."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield TestSessionFactory

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def hub() -> RecordingHub:
    return RecordingHub()
