"""
Pydantic schemas for registration requests and responses.
"""

from datetime import datetime
from pydantic import BaseModel, EmailStr, Field


class RegistrationCreate(BaseModel):
    user_id: int
    user_email: EmailStr
    user_name: str = Field(..., min_length=1, max_length=255)


class RegistrationResponse(BaseModel):
    id: int
    event_id: int
    user_id: int
    status: str
    user_email: str
    user_name: str
    registered_at: datetime

    model_config = {"from_attributes": True}


class RegistrationCountResponse(BaseModel):
    event_id: int
    count: int
