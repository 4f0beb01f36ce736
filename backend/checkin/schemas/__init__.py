from checkin.schemas.user import (
    UserCreate, UserSignup, UserUpdate, PasswordUpdate, UserLogin,
    UserResponse, UserSummary, UserStatistics, AuthResponse,
)
from checkin.schemas.registration import RegistrationCreate, RegistrationResponse, RegistrationCountResponse
from checkin.schemas.ticket import TicketGenerate, TicketVerify, TicketResponse
from checkin.schemas.event import EventCreate, EventUpdate, EventResponse, EventDetailResponse, CapacityResponse
from checkin.schemas.announcement import AnnouncementCreate, AnnouncementResponse

__all__ = [
    "UserCreate", "UserSignup", "UserUpdate", "PasswordUpdate", "UserLogin",
    "UserResponse", "UserSummary", "UserStatistics", "AuthResponse",
    "RegistrationCreate", "RegistrationResponse", "RegistrationCountResponse",
    "TicketGenerate", "TicketVerify", "TicketResponse",
    "EventCreate", "EventUpdate", "EventResponse", "EventDetailResponse", "CapacityResponse",
    "AnnouncementCreate", "AnnouncementResponse",
]
