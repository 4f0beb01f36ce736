from checkin.models.user import User, UserRole
from checkin.models.event import Event
from checkin.models.registration import Registration
from checkin.models.ticket import Ticket
from checkin.models.announcement import Announcement

__all__ = ["User", "UserRole", "Event", "Registration", "Ticket", "Announcement"]
