"""
Ticket issuer and door verifier.

VERIFICATION STRATEGY: at-most-once check-in
=============================================

Two scanners can submit the same code within milliseconds. A read-then-write
("is it verified? no -> set verified") lets both through. Instead the state
change is a single conditional statement:

  UPDATE tickets SET verified = true, verified_at = :now, status = 'checked-in'
  WHERE uuid = :uuid AND verified = false AND status = 'active'

Exactly one caller gets rowcount == 1. Everyone else re-reads the ticket and
gets AlreadyVerified (or InactiveTicket), and verified_at keeps the winner's
timestamp.

Notification order: emails are queued with after_commit and go out only once
the request's transaction has committed, so nobody is told about a ticket or
a check-in that was rolled back. A mail failure is logged and never undoes
the committed state.
"""

import base64
import io
import uuid as uuid_lib
from datetime import datetime, timezone

import qrcode
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from checkin.models.ticket import Ticket, TICKET_ACTIVE, TICKET_CHECKED_IN
from checkin.models.registration import Registration
from checkin.models.event import Event
from checkin.services import registration_service
from checkin.services.email_service import EmailService
from checkin.db.session import after_commit
from checkin.core.exceptions import (
    AlreadyVerifiedError,
    BadRequestError,
    ConflictError,
    InactiveTicketError,
    NotFoundError,
)
from checkin.core.metrics import record_ticket_verification, tickets_issued
from checkin.core.logging import get_logger

logger = get_logger(__name__)


def render_qr_png(data: str) -> bytes:
    image = qrcode.make(data)
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def render_qr_data_url(data: str) -> str:
    encoded = base64.b64encode(render_qr_png(data)).decode("ascii")
    return f"data:image/png;base64,{encoded}"


async def generate_ticket(
    db: AsyncSession,
    event_id: int,
    registration_id: int,
    mailer: EmailService,
) -> Ticket:
    """
    Mint a ticket for a registration and email it to the registrant.

    Raises:
        NotFoundError (404): registration does not exist
        BadRequestError (400): registration belongs to a different event
        ConflictError (409): the registration already has a ticket
    """
    registration = await registration_service.get_registration(db, registration_id)
    if registration.event_id != event_id:
        raise BadRequestError(
            f"Registration {registration_id} does not belong to event {event_id}"
        )

    existing = await db.execute(select(Ticket.id).where(Ticket.registration_id == registration_id))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError(f"Ticket for registration {registration_id} already exists")

    ticket_uuid = str(uuid_lib.uuid4())
    ticket = Ticket(
        event_id=event_id,
        registration_id=registration_id,
        uuid=ticket_uuid,
        qr_code=render_qr_data_url(ticket_uuid),
        status=TICKET_ACTIVE,
        verified=False,
    )
    db.add(ticket)
    try:
        await db.flush()
    except IntegrityError as e:
        # A concurrent request issued the ticket between our check and insert
        await db.rollback()
        raise ConflictError(f"Ticket for registration {registration_id} already exists") from e
    await db.refresh(ticket)

    tickets_issued.inc()
    logger.info(
        "ticket_generated",
        ticket_id=ticket.id,
        event_id=event_id,
        registration_id=registration_id,
    )

    await _queue_registration_confirmation(db, ticket, registration, mailer)
    return ticket


async def get_ticket_by_uuid(db: AsyncSession, ticket_uuid: str) -> Ticket:
    result = await db.execute(
        select(Ticket)
        .where(Ticket.uuid == ticket_uuid)
        .execution_options(populate_existing=True)
    )
    ticket = result.scalar_one_or_none()
    if not ticket:
        raise NotFoundError(f"Ticket with UUID {ticket_uuid} not found")
    return ticket


async def get_ticket_by_registration(db: AsyncSession, registration_id: int) -> Ticket:
    result = await db.execute(
        select(Ticket)
        .where(Ticket.registration_id == registration_id)
        .execution_options(populate_existing=True)
    )
    ticket = result.scalar_one_or_none()
    if not ticket:
        raise NotFoundError(f"Ticket for registration {registration_id} not found")
    return ticket


async def get_tickets_by_event(db: AsyncSession, event_id: int) -> list[Ticket]:
    result = await db.execute(
        select(Ticket)
        .where(Ticket.event_id == event_id)
        .order_by(Ticket.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def render_ticket_qr(db: AsyncSession, ticket_uuid: str) -> bytes:
    ticket = await get_ticket_by_uuid(db, ticket_uuid)
    return render_qr_png(ticket.uuid)


def _reject(ticket: Ticket) -> None:
    if ticket.verified:
        record_ticket_verification("already_verified")
        logger.warning("ticket_verify_failed", reason="already_verified", uuid=ticket.uuid)
        raise AlreadyVerifiedError()
    if ticket.status != TICKET_ACTIVE:
        record_ticket_verification("inactive")
        logger.warning("ticket_verify_failed", reason="inactive", uuid=ticket.uuid, status=ticket.status)
        raise InactiveTicketError()


async def verify_ticket(db: AsyncSession, ticket_uuid: str, mailer: EmailService) -> Ticket:
    """
    Check a ticket in exactly once.

    Raises:
        NotFoundError (404): unknown uuid
        AlreadyVerifiedError (400): already checked in
        InactiveTicketError (400): ticket cancelled
    """
    try:
        ticket = await get_ticket_by_uuid(db, ticket_uuid)
    except NotFoundError:
        record_ticket_verification("not_found")
        raise
    _reject(ticket)

    result = await db.execute(
        update(Ticket)
        .where(
            Ticket.uuid == ticket_uuid,
            Ticket.verified.is_(False),
            Ticket.status == TICKET_ACTIVE,
        )
        .values(
            verified=True,
            verified_at=datetime.now(timezone.utc),
            status=TICKET_CHECKED_IN,
        )
        .execution_options(synchronize_session=False)
    )

    ticket = await get_ticket_by_uuid(db, ticket_uuid)
    if result.rowcount == 0:
        # Another scanner won between our read and our update
        _reject(ticket)
        raise AlreadyVerifiedError()

    record_ticket_verification("checked_in")
    logger.info("ticket_verified", ticket_id=ticket.id, uuid=ticket.uuid, event_id=ticket.event_id)

    await _queue_check_in_confirmation(db, ticket, mailer)
    return ticket


async def _queue_registration_confirmation(
    db: AsyncSession,
    ticket: Ticket,
    registration: Registration,
    mailer: EmailService,
) -> None:
    event = await db.get(Event, ticket.event_id)
    if event is None:
        return

    kwargs = dict(
        to=registration.user_email,
        user_name=registration.user_name,
        event_title=event.title,
        event_date=event.date.isoformat(),
        event_time=event.time.strftime("%H:%M"),
        event_location=event.location,
        ticket_uuid=ticket.uuid,
        qr_code_data_url=ticket.qr_code,
    )
    ticket_id = ticket.id

    async def send() -> None:
        try:
            await mailer.send_registration_confirmation(**kwargs)
        except Exception as e:
            logger.error("registration_email_failed", ticket_id=ticket_id, error=str(e))

    after_commit(db, send)


async def _queue_check_in_confirmation(db: AsyncSession, ticket: Ticket, mailer: EmailService) -> None:
    """Best effort: a lookup or delivery problem here is logged, never raised."""
    registration = (
        await db.execute(select(Registration).where(Registration.id == ticket.registration_id))
    ).scalar_one_or_none()
    if registration is None:
        logger.warning("check_in_email_skipped", ticket_id=ticket.id, reason="registration_missing")
        return

    event = await db.get(Event, ticket.event_id)
    if event is None:
        return

    kwargs = dict(
        to=registration.user_email,
        user_name=registration.user_name,
        event_title=event.title,
        event_date=event.date.isoformat(),
        event_time=event.time.strftime("%H:%M"),
        event_location=event.location,
        verified_at=ticket.verified_at.isoformat() if ticket.verified_at else "",
    )
    ticket_id = ticket.id

    async def send() -> None:
        try:
            await mailer.send_check_in_confirmation(**kwargs)
        except Exception as e:
            logger.error("check_in_email_failed", ticket_id=ticket_id, error=str(e))

    after_commit(db, send)
