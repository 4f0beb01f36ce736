"""
Announcement endpoints. Admins and organizers broadcast; only admins delete.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from checkin.db.session import get_db
from checkin.schemas.announcement import AnnouncementCreate, AnnouncementResponse
from checkin.services import announcement_service
from checkin.services.email_service import EmailService, get_email_service
from checkin.core.security import CurrentUser, authorize

router = APIRouter(prefix="/announcements", tags=["Announcements"])


@router.post("/", response_model=AnnouncementResponse, status_code=status.HTTP_201_CREATED)
async def create_announcement_endpoint(
    data: AnnouncementCreate,
    current_user: CurrentUser = Depends(authorize("announcements:create")),
    db: AsyncSession = Depends(get_db),
    mailer: EmailService = Depends(get_email_service),
):
    """Send an announcement to every registrant of the event."""
    return await announcement_service.create_announcement(
        db, data, current_user.id, current_user.name, mailer
    )


@router.get("/events/{event_id}", response_model=list[AnnouncementResponse])
async def list_by_event(
    event_id: int,
    _: CurrentUser = Depends(authorize("announcements:list")),
    db: AsyncSession = Depends(get_db),
):
    return await announcement_service.get_announcements_by_event(db, event_id)


@router.get("/{announcement_id}", response_model=AnnouncementResponse)
async def get_announcement_endpoint(
    announcement_id: int,
    _: CurrentUser = Depends(authorize("announcements:read")),
    db: AsyncSession = Depends(get_db),
):
    return await announcement_service.get_announcement(db, announcement_id)


@router.delete("/{announcement_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_announcement_endpoint(
    announcement_id: int,
    _: CurrentUser = Depends(authorize("announcements:delete")),
    db: AsyncSession = Depends(get_db),
):
    await announcement_service.delete_announcement(db, announcement_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
