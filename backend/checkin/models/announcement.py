"""
Announcement model: append-only log of broadcasts sent to an event's registrants.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship

from checkin.db.base import Base


class Announcement(Base):
    __tablename__ = "announcements"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    subject = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    sent_by = Column(Integer, nullable=False, index=True)
    sent_by_name = Column(String(255), nullable=False)
    recipient_count = Column(Integer, nullable=False, default=0)
    sent_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    event = relationship("Event", back_populates="announcements")

    def __repr__(self) -> str:
        return f"<Announcement(id={self.id}, event={self.event_id}, recipients={self.recipient_count})>"
