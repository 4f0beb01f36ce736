"""
Ticket model: the scannable proof of a registration.

Status only moves forward: active -> checked-in, or active -> cancelled when
the registration behind it is cancelled. `verified` flips false -> true once.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, CheckConstraint, func
from sqlalchemy.orm import relationship

from checkin.db.base import Base

TICKET_ACTIVE = "active"
TICKET_CHECKED_IN = "checked-in"
TICKET_CANCELLED = "cancelled"


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    # Not a foreign key: the ticket outlives a cancelled registration
    registration_id = Column(Integer, nullable=False, unique=True, index=True)
    uuid = Column(String(36), nullable=False, unique=True, index=True)
    qr_code = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default=TICKET_ACTIVE)
    verified = Column(Boolean, nullable=False, default=False)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    event = relationship("Event", back_populates="tickets")

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'checked-in', 'cancelled')",
            name="check_ticket_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Ticket(id={self.id}, uuid={self.uuid}, status={self.status})>"
