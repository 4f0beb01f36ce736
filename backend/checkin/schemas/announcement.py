"""
Pydantic schemas for announcements.
"""

from datetime import datetime
from pydantic import BaseModel, Field


class AnnouncementCreate(BaseModel):
    event_id: int
    subject: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)


class AnnouncementResponse(BaseModel):
    id: int
    event_id: int
    subject: str
    message: str
    sent_by: int
    sent_by_name: str
    recipient_count: int
    sent_at: datetime

    model_config = {"from_attributes": True}
