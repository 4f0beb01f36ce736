"""
Registration endpoints with concurrency-safe capacity accounting.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from checkin.db.session import get_db
from checkin.schemas.registration import (
    RegistrationCountResponse,
    RegistrationCreate,
    RegistrationResponse,
)
from checkin.services import registration_service
from checkin.services.interfaces.event_lock import EventLock
from checkin.services.lock_factory import get_event_lock

router = APIRouter(prefix="/registrations", tags=["Registrations"])


@router.post(
    "/events/{event_id}/register",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_endpoint(
    event_id: int,
    registration_data: RegistrationCreate,
    db: AsyncSession = Depends(get_db),
    lock: EventLock = Depends(get_event_lock),
):
    """
    Register a user for an event.

    400 if the user is already registered or the event is full, 404 if the
    event does not exist. Capacity is taken with a single conditional update,
    so concurrent requests can never oversell the event.
    """
    return await registration_service.register_for_event(db, event_id, registration_data, lock)


@router.get("/events/{event_id}", response_model=list[RegistrationResponse])
async def list_by_event(event_id: int, db: AsyncSession = Depends(get_db)):
    return await registration_service.get_registrations_by_event(db, event_id)


@router.get("/events/{event_id}/count", response_model=RegistrationCountResponse)
async def count_by_event(event_id: int, db: AsyncSession = Depends(get_db)):
    count = await registration_service.get_registration_count(db, event_id)
    return RegistrationCountResponse(event_id=event_id, count=count)


@router.get("/users/{user_id}", response_model=list[RegistrationResponse])
async def list_by_user(user_id: int, db: AsyncSession = Depends(get_db)):
    return await registration_service.get_registrations_by_user(db, user_id)


@router.get("/{registration_id}", response_model=RegistrationResponse)
async def get_registration_endpoint(registration_id: int, db: AsyncSession = Depends(get_db)):
    return await registration_service.get_registration(db, registration_id)


@router.delete("/{registration_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_registration_endpoint(
    registration_id: int,
    db: AsyncSession = Depends(get_db),
    lock: EventLock = Depends(get_event_lock),
):
    """Cancel a registration and release its place back to the event."""
    await registration_service.cancel_registration(db, registration_id, lock)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
