"""
Test configuration and fixtures.

Every test gets its own SQLite database file under tmp_path, so tests never
share rows or connections.
"""

import os

# main.py builds a module-level app from the environment at import time.
# Must be set BEFORE any import of config or main.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./hotel-test.db")
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-secret")

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlmodel import select

from config import Settings
from coordinator import BookingCoordinator
from database import Database
from main import create_app
from models import Booking, Room
from strategies import BestEffortStrategy, TransactionalStrategy


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'hotel.db'}"


@pytest_asyncio.fixture
async def database(db_url):
    db = Database(db_url, timeout=5)
    await db.connect()
    yield db
    await db.disconnect()


@pytest.fixture
def coordinator(database):
    return BookingCoordinator(database, TransactionalStrategy())


@pytest.fixture
def best_effort_coordinator(database):
    return BookingCoordinator(database, BestEffortStrategy())


async def add_room(database, **fields):
    room = Room(**{"name": "Test Room", "price_per_night": 100, **fields})
    async with database.session() as session:
        session.add(room)
        await session.commit()
    return room


async def load_room(database, room_id):
    async with database.session() as session:
        return await session.get(Room, room_id)


async def load_bookings(database, room_id=None):
    async with database.session() as session:
        statement = select(Booking)
        if room_id is not None:
            statement = statement.where(Booking.room_id == room_id)
        result = await session.execute(statement)
        return list(result.scalars().all())


async def assert_consistent(database):
    """Every room's booked dates are exactly the dates of the bookings pointing at it."""
    async with database.session() as session:
        rooms = (await session.execute(select(Room))).scalars().all()
        bookings = (await session.execute(select(Booking))).scalars().all()
    for room in rooms:
        booking_dates = sorted(b.date for b in bookings if b.room_id == room.id)
        assert sorted(room.booked_dates) == booking_dates, room.id


@pytest_asyncio.fixture
async def room(database):
    return await add_room(database)


@pytest.fixture
def settings(db_url):
    return Settings(
        DATABASE_URL=db_url,
        ACCESS_TOKEN_SECRET="test-secret",
        SEED_ROOMS=True,
        DB_TIMEOUT_SECONDS=5,
    )


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


def login(client, email):
    response = client.post("/get-token", json={"email": email})
    assert response.status_code == 200
    return response
