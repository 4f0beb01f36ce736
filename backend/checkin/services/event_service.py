"""
Event catalog: event CRUD and capacity accounting.

CAPACITY STRATEGY: Conditional Update (reserve-or-reject)
=========================================================

Problem:
  Two attendees register for the last place simultaneously.
  Both read registration_count = capacity - 1, both increment.
  Result: registration_count > capacity, the event is oversold.

Solution:
  The check and the increment are one statement:

    UPDATE events SET registration_count = registration_count + 1
    WHERE id = :event_id AND registration_count < capacity

  The database serializes writers on the row, so exactly one of the two
  sees the predicate hold. rowcount == 0 means the event is full (or gone).
  Release is symmetric with `registration_count > 0`, so the count can
  never go negative even if a cancel is replayed.

  The CHECK constraints on the table are the final safety net.
"""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from checkin.models.event import Event
from checkin.schemas.event import EventCreate, EventUpdate
from checkin.core.exceptions import BadRequestError, CapacityExceededError, NotFoundError
from checkin.core.logging import get_logger

logger = get_logger(__name__)


async def create_event(db: AsyncSession, event_data: EventCreate) -> Event:
    """Create a new event with no registrations and status 'pending'."""
    event = Event(
        **event_data.model_dump(),
        registration_count=0,
        status="pending",
    )
    db.add(event)
    await db.flush()
    await db.refresh(event)

    logger.info("event_created", event_id=event.id, title=event.title, capacity=event.capacity)
    return event


async def get_event(db: AsyncSession, event_id: int) -> Event:
    """Get a single event by ID, with registrations and tickets loaded."""
    result = await db.execute(
        select(Event)
        .where(Event.id == event_id)
        .execution_options(populate_existing=True)
    )
    event = result.scalar_one_or_none()

    if not event:
        raise NotFoundError(f"Event with ID {event_id} not found")
    return event


async def list_events(db: AsyncSession) -> list[Event]:
    result = await db.execute(
        select(Event)
        .order_by(Event.date.asc(), Event.time.asc(), Event.id.asc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def update_event(db: AsyncSession, event_id: int, update_data: EventUpdate) -> Event:
    """Merge provided fields. Capacity may not drop below the current count."""
    event = await get_event(db, event_id)
    changes = {k: v for k, v in update_data.model_dump(exclude_unset=True).items() if v is not None}

    new_capacity = changes.get("capacity")
    if new_capacity is not None and new_capacity < event.registration_count:
        raise BadRequestError(
            f"Capacity cannot be lower than the current registration count ({event.registration_count})"
        )

    for field, value in changes.items():
        setattr(event, field, value)

    await db.flush()
    logger.info("event_updated", event_id=event_id, fields=sorted(changes))
    return await get_event(db, event_id)


async def delete_event(db: AsyncSession, event_id: int) -> None:
    """Delete an event together with its registrations, tickets and announcements."""
    event = await get_event(db, event_id)
    await db.delete(event)
    await db.flush()
    logger.info("event_deleted", event_id=event_id)


async def reserve_slot(db: AsyncSession, event_id: int) -> None:
    """
    Atomically take one place: increment registration_count only while it is
    below capacity. Raises 400 if the event is full, 404 if it does not exist.
    """
    result = await db.execute(
        update(Event)
        .where(Event.id == event_id, Event.registration_count < Event.capacity)
        .values(registration_count=Event.registration_count + 1)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        # Distinguish "full" from "missing" for the caller
        exists = await db.execute(select(Event.id).where(Event.id == event_id))
        if exists.scalar_one_or_none() is None:
            raise NotFoundError(f"Event with ID {event_id} not found")
        logger.warning("event_full", event_id=event_id)
        raise CapacityExceededError()

    logger.debug("slot_reserved", event_id=event_id)


async def release_slot(db: AsyncSession, event_id: int) -> bool:
    """
    Give one place back. Floors at zero: returns False (and changes nothing)
    when the count is already 0.
    """
    result = await db.execute(
        update(Event)
        .where(Event.id == event_id, Event.registration_count > 0)
        .values(registration_count=Event.registration_count - 1)
        .execution_options(synchronize_session=False)
    )
    released = result.rowcount > 0
    if not released:
        logger.warning("slot_release_noop", event_id=event_id)
    return released


async def get_available_capacity(db: AsyncSession, event_id: int) -> int:
    result = await db.execute(
        select(Event.capacity, Event.registration_count).where(Event.id == event_id)
    )
    row = result.one_or_none()
    if row is None:
        raise NotFoundError(f"Event with ID {event_id} not found")
    return row.capacity - row.registration_count
