"""
Registration ledger: who is registered for which event.

Registering and cancelling both touch two rows (the registration and the
event's registration_count). They run inside the request's single
transaction, so a failure after either write rolls back both:

  register: duplicate check -> reserve_slot (conditional UPDATE) -> INSERT
  cancel:   DELETE (must remove the row) -> cancel unverified ticket -> release_slot

The (event_id, user_id) unique index catches the case where the same user
sends two requests at once and both pass the duplicate check.
"""

import time

from sqlalchemy import delete, select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from checkin.models.registration import Registration
from checkin.models.ticket import Ticket, TICKET_ACTIVE, TICKET_CANCELLED
from checkin.schemas.registration import RegistrationCreate
from checkin.services import event_service
from checkin.services.interfaces.event_lock import EventLock
from checkin.services.interfaces.no_event_lock import NoEventLock
from checkin.core.exceptions import (
    CapacityExceededError,
    DuplicateRegistrationError,
    NotFoundError,
)
from checkin.core.metrics import cancellations, record_registration_attempt, registration_latency
from checkin.core.logging import get_logger

logger = get_logger(__name__)

_default_lock = NoEventLock()


async def register_for_event(
    db: AsyncSession,
    event_id: int,
    registration_data: RegistrationCreate,
    lock: EventLock = _default_lock,
) -> Registration:
    """
    Register a user for an event.

    Raises:
        DuplicateRegistrationError (400): user already registered for the event
        CapacityExceededError (400): no places left
        NotFoundError (404): event does not exist
    """
    start = time.perf_counter()
    async with lock.hold(event_id):
        existing = await db.execute(
            select(Registration.id).where(
                Registration.event_id == event_id,
                Registration.user_id == registration_data.user_id,
            )
        )
        if existing.scalar_one_or_none() is not None:
            record_registration_attempt("duplicate")
            logger.warning(
                "registration_failed",
                reason="duplicate",
                event_id=event_id,
                user_id=registration_data.user_id,
            )
            raise DuplicateRegistrationError()

        try:
            await event_service.reserve_slot(db, event_id)
        except CapacityExceededError:
            record_registration_attempt("full")
            raise
        except NotFoundError:
            record_registration_attempt("not_found")
            raise

        registration = Registration(
            event_id=event_id,
            user_id=registration_data.user_id,
            user_email=registration_data.user_email,
            user_name=registration_data.user_name,
            status="registered",
        )
        db.add(registration)
        try:
            await db.flush()
        except IntegrityError as e:
            # Concurrent duplicate from the same user; the rollback also
            # undoes the slot reserved above
            await db.rollback()
            record_registration_attempt("duplicate")
            logger.warning(
                "registration_failed",
                reason="duplicate_race",
                event_id=event_id,
                user_id=registration_data.user_id,
            )
            raise DuplicateRegistrationError() from e

    await db.refresh(registration)
    registration_latency.observe(time.perf_counter() - start)
    record_registration_attempt("success")
    logger.info(
        "registration_created",
        registration_id=registration.id,
        event_id=event_id,
        user_id=registration.user_id,
    )
    return registration


async def get_registrations_by_event(db: AsyncSession, event_id: int) -> list[Registration]:
    result = await db.execute(
        select(Registration)
        .where(Registration.event_id == event_id)
        .order_by(Registration.id)
    )
    return list(result.scalars().all())


async def get_registrations_by_user(db: AsyncSession, user_id: int) -> list[Registration]:
    result = await db.execute(
        select(Registration)
        .where(Registration.user_id == user_id)
        .order_by(Registration.id)
    )
    return list(result.scalars().all())


async def get_registration(db: AsyncSession, registration_id: int) -> Registration:
    result = await db.execute(select(Registration).where(Registration.id == registration_id))
    registration = result.scalar_one_or_none()
    if not registration:
        raise NotFoundError(f"Registration with ID {registration_id} not found")
    return registration


async def cancel_registration(
    db: AsyncSession,
    registration_id: int,
    lock: EventLock = _default_lock,
) -> None:
    """
    Delete a registration and give its place back to the event.
    An unverified ticket for it is marked cancelled so it can no longer be
    used at the door; a ticket that was already checked in is left as is.
    """
    registration = await get_registration(db, registration_id)
    event_id = registration.event_id

    async with lock.hold(event_id):
        # A concurrent cancel may have removed the row since it was read;
        # only the caller whose DELETE hits the row gives the place back
        result = await db.execute(
            delete(Registration)
            .where(Registration.id == registration_id)
            .execution_options(synchronize_session=False)
        )
        db.expunge(registration)
        if result.rowcount != 1:
            logger.warning("registration_cancel_lost_race", registration_id=registration_id)
            raise NotFoundError(f"Registration with ID {registration_id} not found")

        await db.execute(
            update(Ticket)
            .where(
                Ticket.registration_id == registration_id,
                Ticket.status == TICKET_ACTIVE,
            )
            .values(status=TICKET_CANCELLED)
            .execution_options(synchronize_session=False)
        )
        await event_service.release_slot(db, event_id)

    cancellations.inc()
    logger.info("registration_cancelled", registration_id=registration_id, event_id=event_id)


async def get_registration_count(db: AsyncSession, event_id: int) -> int:
    result = await db.execute(
        select(func.count()).select_from(Registration).where(Registration.event_id == event_id)
    )
    return result.scalar_one()
