"""
Pydantic schemas for ticket issuing and verification.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class TicketGenerate(BaseModel):
    event_id: int
    registration_id: int


class TicketVerify(BaseModel):
    uuid: str = Field(..., min_length=1, max_length=64)


class TicketResponse(BaseModel):
    id: int
    event_id: int
    registration_id: int
    uuid: str
    qr_code: str
    status: str
    verified: bool
    verified_at: Optional[datetime]
    created_at: datetime

    model_config = {"from_attributes": True}
