"""
Pytest fixtures for test database, client, and authentication.

Runs against a file-backed SQLite database by default; set TEST_DATABASE_URL
to point the suite at PostgreSQL instead. Tables are created and dropped
around every test. Each HTTP request gets its own session, committed or
rolled back exactly like production's get_db.
"""

import os
from datetime import date, time
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from checkin.main import app
from checkin.db.base import Base
from checkin.db.session import commit, enable_sqlite_foreign_keys, get_db, rollback
from checkin.core.exceptions import EmailDeliveryError
from checkin.core.security import create_user_token, hash_password
from checkin.models.user import User, UserRole
from checkin.models.event import Event
from checkin.services.email_service import get_email_service

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///./test_checkin.db")

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
enable_sqlite_foreign_keys(test_engine)
TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

TEST_PASSWORD = "testpassword123"


class FakeMailer:
    """Records every send instead of talking to SMTP."""

    enabled = True

    def __init__(self):
        self.registration_confirmations: list[dict] = []
        self.check_in_confirmations: list[dict] = []
        self.announcements: list[dict] = []

    async def send_registration_confirmation(self, **kwargs) -> None:
        self.registration_confirmations.append(kwargs)

    async def send_check_in_confirmation(self, **kwargs) -> None:
        self.check_in_confirmations.append(kwargs)

    async def send_announcement(self, recipients, subject, message, event_title) -> None:
        self.announcements.append(
            {
                "recipients": list(recipients),
                "subject": subject,
                "message": message,
                "event_title": event_title,
            }
        )

    async def check_connection(self) -> bool:
        return True


class FailingMailer(FakeMailer):
    """Every send fails the way an unreachable SMTP server would."""

    async def send_registration_confirmation(self, **kwargs) -> None:
        raise EmailDeliveryError("registration email failed: connection refused")

    async def send_check_in_confirmation(self, **kwargs) -> None:
        raise EmailDeliveryError("check_in email failed: connection refused")

    async def send_announcement(self, recipients, subject, message, event_title) -> None:
        raise EmailDeliveryError("announcement email failed: connection refused")


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def session_factory(db_session: AsyncSession) -> async_sessionmaker:
    """Independent sessions for tests that simulate concurrent requests."""
    return TestSessionLocal


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


async def _client_for(mailer: FakeMailer) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        async with TestSessionLocal() as session:
            try:
                yield session
                await commit(session)
            except Exception:
                await rollback(session)
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_service] = lambda: mailer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, mailer: FakeMailer) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client backed by the test database and a recording mailer."""
    async for ac in _client_for(mailer):
        yield ac


@pytest_asyncio.fixture(scope="function")
async def failing_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose mailer fails every send."""
    async for ac in _client_for(FailingMailer()):
        yield ac


async def make_user(db_session: AsyncSession, email: str, name: str, role: UserRole, **extra) -> User:
    user = User(
        email=email,
        name=name,
        role=role.value,
        hashed_password=hash_password(TEST_PASSWORD),
        **extra,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


def bearer_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_user_token(user)}"}


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "admin@example.com", "Admin User", UserRole.ADMIN)


@pytest_asyncio.fixture
async def organizer_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "organizer@example.com", "Olivia Organizer", UserRole.ORGANIZER)


@pytest_asyncio.fixture
async def attendee_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "attendee@example.com", "Alex Attendee", UserRole.ATTENDEE)


@pytest_asyncio.fixture
async def inactive_user(db_session: AsyncSession) -> User:
    return await make_user(
        db_session, "inactive@example.com", "Ian Inactive", UserRole.ATTENDEE, is_active=False
    )


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return bearer_headers(admin_user)


@pytest.fixture
def organizer_headers(organizer_user: User) -> dict:
    return bearer_headers(organizer_user)


@pytest.fixture
def attendee_headers(attendee_user: User) -> dict:
    return bearer_headers(attendee_user)


async def make_event(db_session: AsyncSession, title: str, capacity: int, organizer_id=None) -> Event:
    event = Event(
        title=title,
        description="A test event",
        date=date(2030, 6, 15),
        time=time(18, 30),
        location="Test Venue",
        capacity=capacity,
        registration_count=0,
        organizer_id=organizer_id,
    )
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest_asyncio.fixture
async def test_event(db_session: AsyncSession, organizer_user: User) -> Event:
    """An event with 100 places."""
    return await make_event(db_session, "Test Concert", 100, organizer_user.id)


@pytest_asyncio.fixture
async def single_place_event(db_session: AsyncSession) -> Event:
    """An event with exactly one place."""
    return await make_event(db_session, "Intimate Workshop", 1)


def registration_payload(user_id: int, email: str = None, name: str = None) -> dict:
    return {
        "user_id": user_id,
        "user_email": email or f"user{user_id}@example.com",
        "user_name": name or f"User {user_id}",
    }


async def register(client: AsyncClient, event_id: int, user_id: int, **kwargs):
    return await client.post(
        f"/api/v1/registrations/events/{event_id}/register",
        json=registration_payload(user_id, **kwargs),
    )


async def issue_ticket(client: AsyncClient, event_id: int, user_id: int) -> dict:
    """Register a user and generate their ticket; returns the ticket JSON."""
    reg = await register(client, event_id, user_id)
    assert reg.status_code == 201
    ticket = await client.post(
        "/api/v1/tickets/generate",
        json={"event_id": event_id, "registration_id": reg.json()["id"]},
    )
    assert ticket.status_code == 201
    return ticket.json()
