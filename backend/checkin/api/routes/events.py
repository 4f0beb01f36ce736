"""
Event endpoints. Unauthenticated; organizer scoping is left to callers.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from checkin.db.session import get_db
from checkin.schemas.event import (
    CapacityResponse,
    EventCreate,
    EventDetailResponse,
    EventResponse,
    EventUpdate,
)
from checkin.services import event_service

router = APIRouter(prefix="/events", tags=["Events"])


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(event_data: EventCreate, db: AsyncSession = Depends(get_db)):
    """Create a new event. Starts with status 'pending' and no registrations."""
    return await event_service.create_event(db, event_data)


@router.get("/", response_model=list[EventDetailResponse])
async def list_events_endpoint(db: AsyncSession = Depends(get_db)):
    """List all events with their registrations and tickets."""
    return await event_service.list_events(db)


@router.get("/{event_id}", response_model=EventDetailResponse)
async def get_event_endpoint(event_id: int, db: AsyncSession = Depends(get_db)):
    return await event_service.get_event(db, event_id)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event_endpoint(
    event_id: int,
    update_data: EventUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await event_service.update_event(db, event_id, update_data)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event_endpoint(event_id: int, db: AsyncSession = Depends(get_db)):
    """Delete an event and everything registered against it."""
    await event_service.delete_event(db, event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{event_id}/capacity", response_model=CapacityResponse)
async def get_capacity_endpoint(event_id: int, db: AsyncSession = Depends(get_db)):
    """Remaining places. Read straight from the database, never cached."""
    event = await event_service.get_event(db, event_id)
    return CapacityResponse(
        event_id=event.id,
        capacity=event.capacity,
        registration_count=event.registration_count,
        available=await event_service.get_available_capacity(db, event_id),
    )
