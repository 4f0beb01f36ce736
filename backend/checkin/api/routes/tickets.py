"""
Ticket endpoints: issuing, lookup, QR images and door verification.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from checkin.db.session import get_db
from checkin.schemas.ticket import TicketGenerate, TicketResponse, TicketVerify
from checkin.services import ticket_service
from checkin.services.email_service import EmailService, get_email_service

router = APIRouter(prefix="/tickets", tags=["Tickets"])


@router.post("/generate", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
async def generate_ticket_endpoint(
    data: TicketGenerate,
    db: AsyncSession = Depends(get_db),
    mailer: EmailService = Depends(get_email_service),
):
    """Issue the ticket for a registration and email it to the registrant."""
    return await ticket_service.generate_ticket(db, data.event_id, data.registration_id, mailer)


@router.get("/uuid/{ticket_uuid}", response_model=TicketResponse)
async def get_by_uuid(ticket_uuid: str, db: AsyncSession = Depends(get_db)):
    return await ticket_service.get_ticket_by_uuid(db, ticket_uuid)


@router.get(
    "/uuid/{ticket_uuid}/qr",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
)
async def get_qr_image(ticket_uuid: str, db: AsyncSession = Depends(get_db)):
    """The ticket's QR code as a PNG image."""
    png = await ticket_service.render_ticket_qr(db, ticket_uuid)
    return Response(content=png, media_type="image/png")


@router.get("/registration/{registration_id}", response_model=TicketResponse)
async def get_by_registration(registration_id: int, db: AsyncSession = Depends(get_db)):
    return await ticket_service.get_ticket_by_registration(db, registration_id)


@router.get("/events/{event_id}", response_model=list[TicketResponse])
async def list_by_event(event_id: int, db: AsyncSession = Depends(get_db)):
    return await ticket_service.get_tickets_by_event(db, event_id)


@router.post("/verify", response_model=TicketResponse)
async def verify_ticket_endpoint(
    data: TicketVerify,
    db: AsyncSession = Depends(get_db),
    mailer: EmailService = Depends(get_email_service),
):
    """
    Check a ticket in at the door.

    Succeeds exactly once per ticket; later scans of the same code get 400.
    """
    return await ticket_service.verify_ticket(db, data.uuid, mailer)
