"""
Concurrency tests: many independent sessions racing for the same rows.

Each simulated request has its own session and commits on its own, the way
concurrent HTTP requests do in production.
"""

import asyncio

import pytest
from sqlalchemy import select

from checkin.core.exceptions import (
    AlreadyVerifiedError,
    CapacityExceededError,
    ConflictError,
    DuplicateRegistrationError,
    NotFoundError,
)
from checkin.db.session import commit
from checkin.models.event import Event
from checkin.models.registration import Registration
from checkin.models.ticket import Ticket
from checkin.schemas.registration import RegistrationCreate
from checkin.services import registration_service, ticket_service
from conftest import FakeMailer, make_event


async def _attempt_registration(session_factory, event_id: int, user_id: int) -> str:
    async with session_factory() as session:
        try:
            await registration_service.register_for_event(
                session,
                event_id,
                RegistrationCreate(
                    user_id=user_id,
                    user_email=f"user{user_id}@example.com",
                    user_name=f"User {user_id}",
                ),
            )
            await session.commit()
            return "registered"
        except CapacityExceededError:
            await session.rollback()
            return "full"
        except DuplicateRegistrationError:
            await session.rollback()
            return "duplicate"


async def _registration_count(session_factory, event_id: int) -> int:
    async with session_factory() as session:
        result = await session.execute(select(Event.registration_count).where(Event.id == event_id))
        return result.scalar_one()


@pytest.mark.asyncio
async def test_concurrent_registrations_never_oversell(db_session, session_factory):
    """10 simultaneous registrations for 3 places: exactly 3 succeed."""
    event = await make_event(db_session, "Flash Sale", 3)

    results = await asyncio.gather(
        *[_attempt_registration(session_factory, event.id, user_id) for user_id in range(1, 11)]
    )

    assert results.count("registered") == 3
    assert results.count("full") == 7
    assert await _registration_count(session_factory, event.id) == 3

    async with session_factory() as session:
        rows = await session.execute(select(Registration).where(Registration.event_id == event.id))
        assert len(rows.scalars().all()) == 3


@pytest.mark.asyncio
async def test_concurrent_duplicate_registrations(db_session, session_factory):
    """The same user sending five requests at once is registered exactly once."""
    event = await make_event(db_session, "Meetup", 10)

    results = await asyncio.gather(
        *[_attempt_registration(session_factory, event.id, 77) for _ in range(5)]
    )

    assert results.count("registered") == 1
    assert results.count("duplicate") == 4
    assert await _registration_count(session_factory, event.id) == 1


@pytest.mark.asyncio
async def test_concurrent_ticket_verification(db_session, session_factory):
    """Two scanners submitting the same code: one check-in, one AlreadyVerified."""
    event = await make_event(db_session, "Gala", 10)
    mailer = FakeMailer()

    async with session_factory() as session:
        registration = await registration_service.register_for_event(
            session,
            event.id,
            RegistrationCreate(user_id=1, user_email="user1@example.com", user_name="User 1"),
        )
        ticket = await ticket_service.generate_ticket(session, event.id, registration.id, mailer)
        await commit(session)
        ticket_uuid = ticket.uuid

    async def scan() -> str:
        async with session_factory() as session:
            try:
                verified = await ticket_service.verify_ticket(session, ticket_uuid, mailer)
                await commit(session)
                return verified.verified_at.isoformat()
            except AlreadyVerifiedError:
                await session.rollback()
                return "rejected"

    results = await asyncio.gather(scan(), scan(), scan())

    winners = [r for r in results if r != "rejected"]
    assert len(winners) == 1
    assert results.count("rejected") == 2
    assert len(mailer.check_in_confirmations) == 1

    async with session_factory() as session:
        stored = await ticket_service.get_ticket_by_uuid(session, ticket_uuid)
        assert stored.verified is True
        assert stored.verified_at.isoformat() == winners[0]


@pytest.mark.asyncio
async def test_overlapping_cancels_release_one_place(db_session, session_factory):
    """Two cancels of the same registration: one succeeds, the count drops by one."""
    event = await make_event(db_session, "Workshop", 10)
    assert await _attempt_registration(session_factory, event.id, 1) == "registered"
    assert await _attempt_registration(session_factory, event.id, 2) == "registered"

    async with session_factory() as session:
        result = await session.execute(
            select(Registration.id).where(
                Registration.event_id == event.id, Registration.user_id == 1
            )
        )
        registration_id = result.scalar_one()

    async def cancel() -> str:
        async with session_factory() as session:
            try:
                await registration_service.cancel_registration(session, registration_id)
                await commit(session)
                return "cancelled"
            except NotFoundError:
                await session.rollback()
                return "missing"

    results = await asyncio.gather(cancel(), cancel())

    assert results.count("cancelled") == 1
    assert results.count("missing") == 1
    assert await _registration_count(session_factory, event.id) == 1

    async with session_factory() as session:
        rows = await session.execute(select(Registration).where(Registration.event_id == event.id))
        remaining = rows.scalars().all()
        assert [r.user_id for r in remaining] == [2]


@pytest.mark.asyncio
async def test_concurrent_ticket_generation_issues_one_ticket(db_session, session_factory):
    """Two generate requests for one registration: one ticket, one ConflictError."""
    event = await make_event(db_session, "Summit", 10)
    mailer = FakeMailer()

    async with session_factory() as session:
        registration = await registration_service.register_for_event(
            session,
            event.id,
            RegistrationCreate(user_id=1, user_email="user1@example.com", user_name="User 1"),
        )
        await commit(session)
        registration_id = registration.id

    async def generate() -> str:
        async with session_factory() as session:
            try:
                ticket = await ticket_service.generate_ticket(session, event.id, registration_id, mailer)
                await commit(session)
                return ticket.uuid
            except ConflictError:
                await session.rollback()
                return "conflict"

    results = await asyncio.gather(generate(), generate())

    assert results.count("conflict") == 1
    assert len(mailer.registration_confirmations) == 1

    async with session_factory() as session:
        rows = await session.execute(select(Ticket).where(Ticket.registration_id == registration_id))
        tickets = rows.scalars().all()
        assert len(tickets) == 1
        assert tickets[0].uuid in results
