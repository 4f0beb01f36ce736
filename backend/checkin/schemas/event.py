"""
Pydantic schemas for event-related request/response validation.
"""

import datetime as dt
from typing import Optional
from pydantic import BaseModel, Field

from checkin.schemas.registration import RegistrationResponse
from checkin.schemas.ticket import TicketResponse


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field("", max_length=10000)
    date: dt.date
    time: dt.time
    location: str = Field(..., min_length=1, max_length=255)
    capacity: int = Field(..., gt=0, le=1000000)
    organizer_id: Optional[int] = None


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=10000)
    date: Optional[dt.date] = None
    time: Optional[dt.time] = None
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    capacity: Optional[int] = Field(None, gt=0, le=1000000)
    status: Optional[str] = Field(None, min_length=1, max_length=50)


class EventResponse(BaseModel):
    id: int
    title: str
    description: str
    date: dt.date
    time: dt.time
    location: str
    capacity: int
    registration_count: int
    status: str
    organizer_id: Optional[int]
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = {"from_attributes": True}


class EventDetailResponse(EventResponse):
    registrations: list[RegistrationResponse] = []
    tickets: list[TicketResponse] = []


class CapacityResponse(BaseModel):
    event_id: int
    capacity: int
    registration_count: int
    available: int
