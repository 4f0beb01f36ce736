"""
Seed the database with demo accounts and sample events.

Run: python -m checkin.seed

Accounts whose email already exists are left untouched, so the script can be
run repeatedly. Events are only created when the organizer account is new.
"""

import asyncio
from datetime import date, time

from checkin.core.logging import setup_logging, get_logger
from checkin.db.session import AsyncSessionLocal, create_tables, engine
from checkin.models.user import UserRole
from checkin.schemas.event import EventCreate
from checkin.schemas.user import UserCreate
from checkin.services import event_service, user_service

logger = get_logger(__name__)

SEED_USERS = [
    UserCreate(email="jhanmendoza@admin.com", password="SecurePass2024!", name="Jhan Mendoza", role=UserRole.ADMIN),
    UserCreate(email="systemadmin@admin.com", password="AdminSecure2024!", name="System Administrator", role=UserRole.ADMIN),
    UserCreate(email="organizer@test.com", password="organizer123", name="Organizer User", role=UserRole.ORGANIZER),
    UserCreate(email="attendee@test.com", password="attendee123", name="Attendee User", role=UserRole.ATTENDEE),
]

SEED_EVENTS = [
    {
        "title": "Tech Conference 2024",
        "description": "Annual technology conference featuring the latest innovations in software development, AI, and cloud computing.",
        "date": date(2024, 12, 15),
        "time": time(9, 0),
        "location": "Convention Center, Main Hall",
        "capacity": 500,
    },
    {
        "title": "Web Development Workshop",
        "description": "Hands-on workshop covering React, Node.js, and modern web development practices.",
        "date": date(2024, 12, 20),
        "time": time(14, 0),
        "location": "Tech Hub, Room 301",
        "capacity": 50,
    },
    {
        "title": "Startup Networking Event",
        "description": "Connect with entrepreneurs, investors, and innovators in the startup ecosystem.",
        "date": date(2024, 12, 25),
        "time": time(18, 0),
        "location": "Innovation Center",
        "capacity": 100,
    },
]


async def seed() -> None:
    await create_tables()

    async with AsyncSessionLocal() as db:
        organizer = None
        for user_data in SEED_USERS:
            if await user_service.get_user_by_email(db, user_data.email):
                logger.info("seed_user_exists", email=user_data.email)
                continue
            user = await user_service.create_user(db, user_data)
            if user.role == UserRole.ORGANIZER.value:
                organizer = user

        if organizer is not None:
            for event_data in SEED_EVENTS:
                await event_service.create_event(
                    db, EventCreate(**event_data, organizer_id=organizer.id)
                )

        await db.commit()

    logger.info("seed_complete", users=len(SEED_USERS), events_created=organizer is not None)


async def main() -> None:
    setup_logging()
    try:
        await seed()
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
