"""
Announcement broadcaster: one message to every registrant of an event.

recipient_count is the number of addresses handed to the mail transport at
send time. It is never reconciled with delivery outcomes.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from checkin.models.announcement import Announcement
from checkin.schemas.announcement import AnnouncementCreate
from checkin.services import event_service, registration_service
from checkin.services.email_service import EmailService
from checkin.core.exceptions import NotFoundError
from checkin.core.logging import get_logger

logger = get_logger(__name__)


async def create_announcement(
    db: AsyncSession,
    data: AnnouncementCreate,
    sender_id: int,
    sender_name: str,
    mailer: EmailService,
) -> Announcement:
    event = await event_service.get_event(db, data.event_id)
    registrations = await registration_service.get_registrations_by_event(db, data.event_id)
    recipients = [r.user_email for r in registrations]

    if recipients:
        try:
            await mailer.send_announcement(recipients, data.subject, data.message, event.title)
        except Exception as e:
            # Recorded anyway; delivery is not tracked per recipient
            logger.error(
                "announcement_email_failed",
                event_id=data.event_id,
                recipients=len(recipients),
                error=str(e),
            )

    announcement = Announcement(
        event_id=data.event_id,
        subject=data.subject,
        message=data.message,
        sent_by=sender_id,
        sent_by_name=sender_name,
        recipient_count=len(recipients),
    )
    db.add(announcement)
    await db.flush()
    await db.refresh(announcement)

    logger.info(
        "announcement_created",
        announcement_id=announcement.id,
        event_id=data.event_id,
        recipients=announcement.recipient_count,
        sent_by=sender_id,
    )
    return announcement


async def get_announcements_by_event(db: AsyncSession, event_id: int) -> list[Announcement]:
    result = await db.execute(
        select(Announcement)
        .where(Announcement.event_id == event_id)
        .order_by(Announcement.sent_at.desc(), Announcement.id.desc())
    )
    return list(result.scalars().all())


async def get_announcement(db: AsyncSession, announcement_id: int) -> Announcement:
    result = await db.execute(select(Announcement).where(Announcement.id == announcement_id))
    announcement = result.scalar_one_or_none()
    if not announcement:
        raise NotFoundError(f"Announcement with ID {announcement_id} not found")
    return announcement


async def delete_announcement(db: AsyncSession, announcement_id: int) -> None:
    announcement = await get_announcement(db, announcement_id)
    await db.delete(announcement)
    await db.flush()
    logger.info("announcement_deleted", announcement_id=announcement_id)
