"""
Shared test fixtures.

Two backends are provided:

* ``store`` -- the in-memory Request State Store, seeded through
  ``add_vehicle`` / ``add_request``.
* ``session_factory`` / ``sql_store`` -- an in-memory SQLite database (via
  aiosqlite) with the production models, so tests run without Docker /
  PostgreSQL / Redis.  SQLite ignores ``FOR UPDATE``; concurrency is
  exercised against the in-memory store instead.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.domain.capacity import CapacityLedger
from src.domain.entities import Request, Vehicle
from src.domain.enums import RequestStatus
from src.infrastructure import models  # noqa: F401  (registers tables)
from src.infrastructure.database import Base
from src.infrastructure.memory_store import InMemoryRequestStore
from src.infrastructure.sql_store import SqlRequestStateStore
from src.services.decision_engine import DecisionEngine


TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


# ── In-memory store ───────────────────────────────────────────────────


@pytest.fixture
def store() -> InMemoryRequestStore:
    return InMemoryRequestStore()


@pytest.fixture
def engine(store: InMemoryRequestStore) -> DecisionEngine:
    return DecisionEngine(store, CapacityLedger(store), timeout_seconds=2.0)


def add_vehicle(store, total_seats: int, plate_no: str = "", **kwargs) -> Vehicle:
    plate_no = plate_no or f"TST {len(store.vehicles) + 1:03d}"
    return store.add_vehicle(
        Vehicle(plate_no=plate_no, total_seats=total_seats, **kwargs)
    )


def add_request(
    store,
    passengers: int = 1,
    status: RequestStatus = RequestStatus.PENDING,
    vehicle_id: int | None = None,
    destination: str = "Makati",
    **kwargs,
) -> Request:
    names = [f"Passenger {i + 1}" for i in range(passengers)]
    return store.add_request(
        Request(
            destination=destination,
            passenger_names=names,
            passenger_count=passengers,
            status=status,
            vehicle_id=vehicle_id,
            **kwargs,
        )
    )


# ── SQLite-backed store ───────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Create tables on a fresh in-memory database, then dispose it."""
    test_engine = create_async_engine(
        TEST_DB_URL, echo=False, poolclass=StaticPool
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )

    await test_engine.dispose()


@pytest.fixture
def sql_store(session_factory) -> SqlRequestStateStore:
    return SqlRequestStateStore(session_factory)
