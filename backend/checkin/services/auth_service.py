"""
Authentication service handling self-registration and login.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from checkin.models.user import User, UserRole
from checkin.schemas.user import AuthResponse, UserCreate, UserSignup, UserSummary
from checkin.services import user_service
from checkin.core.exceptions import AccountDeactivatedError, InvalidCredentialsError
from checkin.core.security import create_user_token, verify_password
from checkin.core.logging import get_logger

logger = get_logger(__name__)


def _auth_response(user: User) -> AuthResponse:
    return AuthResponse(
        access_token=create_user_token(user),
        user=UserSummary.model_validate(user),
    )


async def validate_user(db: AsyncSession, email: str, password: str) -> Optional[User]:
    """
    Returns the user when the credentials match, None otherwise.
    Raises 401 if the account exists but is deactivated.
    """
    user = await user_service.get_user_by_email(db, email)
    if user is None:
        return None

    if not user.is_active:
        logger.warning("login_failed", reason="deactivated", user_id=user.id)
        raise AccountDeactivatedError()

    if not verify_password(password, user.hashed_password):
        return None
    return user


async def login(db: AsyncSession, email: str, password: str) -> AuthResponse:
    """
    Authenticate and return a JWT plus the public user projection.
    Raises 401 if credentials are invalid.
    """
    user = await validate_user(db, email, password)
    if user is None:
        logger.warning("login_failed", reason="invalid_credentials", email=email)
        raise InvalidCredentialsError()

    logger.info("user_logged_in", user_id=user.id, role=user.role)
    return _auth_response(user)


async def register(db: AsyncSession, signup: UserSignup) -> AuthResponse:
    """Self-registration always creates an attendee."""
    user = await user_service.create_user(
        db,
        UserCreate(**signup.model_dump(), role=UserRole.ATTENDEE),
    )
    logger.info("user_registered", user_id=user.id, email=user.email)
    return _auth_response(user)
