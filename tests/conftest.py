"""
Pytest fixtures for test database, client, authentication and the
enrollment/ticket/hotel data a booking depends on.

Runs against in-memory SQLite unless TEST_DATABASE_URL points elsewhere.
SQLite has no row locks, so tests marked `postgres` (the concurrency suite)
are skipped there and the skip reason names the variable to set. Tables are
created and dropped around every test for isolation.
"""

import os
from datetime import datetime, timedelta, timezone

os.environ.setdefault("REDIS_ENABLED", "false")

from typing import AsyncGenerator

import jwt
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from hotel_booking.main import app
from hotel_booking.db.base import Base
from hotel_booking.db.session import get_db
from hotel_booking.core.config import get_settings
from hotel_booking.models import (
    Booking,
    Enrollment,
    Hotel,
    Room,
    Ticket,
    TicketStatus,
    TicketType,
    User,
)

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


def is_postgres() -> bool:
    return TEST_DATABASE_URL.startswith("postgresql")


def pytest_report_header(config):
    backend = "postgresql" if is_postgres() else "sqlite (row-lock tests skipped)"
    return f"test database: {backend}"


def pytest_collection_modifyitems(config, items):
    if is_postgres():
        return
    skip_postgres = pytest.mark.skip(
        reason="row-lock concurrency test: set TEST_DATABASE_URL to a PostgreSQL URL"
    )
    for item in items:
        if "postgres" in item.keywords:
            item.add_marker(skip_postgres)


@pytest_asyncio.fixture(scope="function")
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    if is_postgres():
        test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    else:
        test_engine = create_async_engine(
            TEST_DATABASE_URL,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


class Factory:
    """Creates committed rows for the entities a booking depends on."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    async def _save(self, obj):
        self.session.add(obj)
        await self.session.commit()
        await self.session.refresh(obj)
        return obj

    async def user(self) -> User:
        return await self._save(User(email=f"user{self._next()}@example.com"))

    async def enrollment(self, user: User) -> Enrollment:
        return await self._save(Enrollment(user_id=user.id, name=f"Attendee {user.id}"))

    async def ticket_type(self, is_remote: bool = False, includes_hotel: bool = True) -> TicketType:
        return await self._save(
            TicketType(
                name=f"Ticket type {self._next()}",
                price=500,
                is_remote=is_remote,
                includes_hotel=includes_hotel,
            )
        )

    async def ticket(
        self,
        enrollment: Enrollment,
        ticket_type: TicketType,
        status: TicketStatus = TicketStatus.PAID,
    ) -> Ticket:
        return await self._save(
            Ticket(enrollment_id=enrollment.id, ticket_type_id=ticket_type.id, status=status.value)
        )

    async def eligible_user(self) -> User:
        """User enrolled with a PAID, in-person, hotel-inclusive ticket."""
        user = await self.user()
        enrollment = await self.enrollment(user)
        await self.ticket(enrollment, await self.ticket_type())
        return user

    async def hotel(self) -> Hotel:
        return await self._save(Hotel(name=f"Hotel {self._next()}", image="https://example.com/h.png"))

    async def room(self, hotel: Hotel, capacity: int = 3) -> Room:
        return await self._save(Room(name=f"{self._next()}01", capacity=capacity, hotel_id=hotel.id))

    async def booking(self, user: User, room: Room) -> Booking:
        return await self._save(Booking(user_id=user.id, room_id=room.id))


@pytest.fixture
def factory(db_session: AsyncSession) -> Factory:
    return Factory(db_session)


def make_token(subject, expires_in: timedelta = timedelta(minutes=30)) -> str:
    """Sign a token the way the authentication service issues them."""
    settings = get_settings()
    payload = {"sub": str(subject), "exp": datetime.now(timezone.utc) + expires_in}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def auth_headers_for(user: User) -> dict:
    token = make_token(user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def hotel(factory: Factory) -> Hotel:
    return await factory.hotel()


@pytest_asyncio.fixture
async def test_user(factory: Factory) -> User:
    return await factory.eligible_user()


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict:
    return auth_headers_for(test_user)
