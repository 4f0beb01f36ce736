"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from checkin.api.routes import auth, events, registrations, tickets, announcements, users

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(events.router)
api_router.include_router(registrations.router)
api_router.include_router(tickets.router)
api_router.include_router(announcements.router)
api_router.include_router(users.router)
