"""
Event model with capacity accounting.

Key design decisions:
- `registration_count` is the authoritative count of registrations. It is only
  changed by the conditional updates in event_service (reserve/release), never
  recomputed from the registrations table.
- CHECK constraints keep 0 <= registration_count <= capacity at the DB level
- Registrations, tickets and announcements are owned by the event and are
  removed with it
"""

from sqlalchemy import Column, Integer, String, Text, Date, Time, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from checkin.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    date = Column(Date, nullable=False)
    time = Column(Time, nullable=False)
    location = Column(String(255), nullable=False)
    capacity = Column(Integer, nullable=False)
    registration_count = Column(Integer, nullable=False, default=0)
    status = Column(String(50), nullable=False, default="pending")
    organizer_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Relationships
    registrations = relationship(
        "Registration",
        back_populates="event",
        lazy="selectin",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    tickets = relationship(
        "Ticket",
        back_populates="event",
        lazy="selectin",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    announcements = relationship(
        "Announcement",
        back_populates="event",
        lazy="raise",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("capacity > 0", name="check_capacity_positive"),
        CheckConstraint("registration_count >= 0", name="check_registration_count_non_negative"),
        CheckConstraint("registration_count <= capacity", name="check_registration_count_lte_capacity"),
        Index("ix_events_date", "date"),
    )

    @property
    def available_capacity(self) -> int:
        return self.capacity - self.registration_count

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, registered={self.registration_count}/{self.capacity})>"
