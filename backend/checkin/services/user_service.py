"""
User directory: accounts, roles and credentials.
"""

from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from checkin.models.user import User, UserRole
from checkin.models.registration import Registration
from checkin.models.announcement import Announcement
from checkin.schemas.user import UserCreate, UserUpdate
from checkin.core.exceptions import ConflictError, NotFoundError
from checkin.core.security import hash_password
from checkin.core.logging import get_logger

logger = get_logger(__name__)


async def create_user(db: AsyncSession, user_data: UserCreate) -> User:
    """
    Create a user with a bcrypt-hashed password.
    Raises 409 if the email is already registered.
    """
    if await get_user_by_email(db, user_data.email):
        logger.warning("user_create_failed", reason="email_exists", email=user_data.email)
        raise ConflictError("User with this email already exists")

    user = User(
        email=user_data.email,
        name=user_data.name,
        role=user_data.role.value,
        hashed_password=hash_password(user_data.password),
        phone=user_data.phone,
        company=user_data.company,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as e:
        # Lost a race with a concurrent signup for the same email
        await db.rollback()
        raise ConflictError("User with this email already exists") from e
    await db.refresh(user)

    logger.info("user_created", user_id=user.id, email=user.email, role=user.role)
    return user


async def get_user(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError(f"User with ID {user_id} not found")
    return user


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.id))
    return list(result.scalars().all())


async def list_users_by_role(db: AsyncSession, role: UserRole) -> list[User]:
    result = await db.execute(select(User).where(User.role == role.value).order_by(User.id))
    return list(result.scalars().all())


async def update_user(db: AsyncSession, user_id: int, update_data: UserUpdate) -> User:
    """Merge the provided fields. Raises 404 if absent, 409 on an email collision."""
    user = await get_user(db, user_id)
    changes = update_data.model_dump(exclude_unset=True)

    new_email = changes.get("email")
    if new_email and new_email != user.email:
        existing = await get_user_by_email(db, new_email)
        if existing and existing.id != user.id:
            raise ConflictError("Email already in use")

    if "role" in changes and changes["role"] is not None:
        changes["role"] = changes["role"].value

    for field, value in changes.items():
        if value is None and field in ("name", "email", "role", "is_active"):
            continue
        setattr(user, field, value)

    await db.flush()
    await db.refresh(user)
    logger.info("user_updated", user_id=user.id, fields=sorted(changes))
    return user


async def update_password(db: AsyncSession, user_id: int, new_password: str) -> None:
    user = await get_user(db, user_id)
    user.hashed_password = hash_password(new_password)
    await db.flush()
    logger.info("user_password_updated", user_id=user_id)


async def toggle_active(db: AsyncSession, user_id: int) -> User:
    user = await get_user(db, user_id)
    user.is_active = not user.is_active
    await db.flush()
    await db.refresh(user)
    logger.info("user_active_toggled", user_id=user.id, is_active=user.is_active)
    return user


async def delete_user(db: AsyncSession, user_id: int) -> None:
    """
    Hard delete.

    Blocked with 409 while the user still has registrations or authored
    announcements, so history is never orphaned. Deactivate such accounts
    instead. Organized events survive with organizer_id set to NULL.
    """
    user = await get_user(db, user_id)

    registrations = (
        await db.execute(
            select(func.count()).select_from(Registration).where(Registration.user_id == user_id)
        )
    ).scalar_one()
    announcements = (
        await db.execute(
            select(func.count()).select_from(Announcement).where(Announcement.sent_by == user_id)
        )
    ).scalar_one()

    if registrations or announcements:
        logger.warning(
            "user_delete_blocked",
            user_id=user_id,
            registrations=registrations,
            announcements=announcements,
        )
        raise ConflictError(
            "User has registrations or announcements; deactivate the account instead"
        )

    await db.delete(user)
    await db.flush()
    logger.info("user_deleted", user_id=user_id)


async def get_statistics(db: AsyncSession) -> dict:
    """Counts by role and by active flag."""
    by_role = dict(
        (await db.execute(select(User.role, func.count()).group_by(User.role))).all()
    )
    active = (
        await db.execute(select(func.count()).select_from(User).where(User.is_active.is_(True)))
    ).scalar_one()
    total = sum(by_role.values())

    return {
        "total": total,
        "admins": by_role.get(UserRole.ADMIN.value, 0),
        "organizers": by_role.get(UserRole.ORGANIZER.value, 0),
        "attendees": by_role.get(UserRole.ATTENDEE.value, 0),
        "active": active,
        "inactive": total - active,
    }
