"""
Registration model: one user's place at one event.

Key design decisions:
- Unique constraint on (event_id, user_id) rejects duplicate registrations,
  including two concurrent requests from the same user
- Registrant email/name are snapshotted so notifications do not depend on the
  user row still existing
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship

from checkin.db.base import Base


class Registration(Base):
    __tablename__ = "registrations"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    status = Column(String(20), nullable=False, default="registered")
    user_email = Column(String(255), nullable=False)
    user_name = Column(String(255), nullable=False)
    registered_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    event = relationship("Event", back_populates="registrations")

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_user_registration"),
    )

    def __repr__(self) -> str:
        return f"<Registration(id={self.id}, event={self.event_id}, user={self.user_id})>"
