"""
Password hashing, JWT issuance and the role-based authorization gate.

Authorization is declared in one place: ENDPOINT_ROLES maps an operation name
to the roles allowed to call it, and `authorize(operation)` is the single
dependency every gated route puts in front of its handler.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from checkin.core.config import get_settings
from checkin.core.exceptions import ForbiddenError, UnauthorizedError
from checkin.core.logging import get_logger
from checkin.db.session import get_db
from checkin.models.user import User, UserRole

logger = get_logger(__name__)
settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)

ADMIN = UserRole.ADMIN.value
ORGANIZER = UserRole.ORGANIZER.value
ATTENDEE = UserRole.ATTENDEE.value

ENDPOINT_ROLES: dict[str, frozenset[str]] = {
    "announcements:create": frozenset({ADMIN, ORGANIZER}),
    "announcements:list": frozenset({ADMIN, ORGANIZER}),
    "announcements:read": frozenset({ADMIN, ORGANIZER}),
    "announcements:delete": frozenset({ADMIN}),
    "users:create": frozenset({ADMIN}),
    "users:list": frozenset({ADMIN}),
    "users:statistics": frozenset({ADMIN}),
    "users:list_by_role": frozenset({ADMIN}),
    "users:read": frozenset({ADMIN}),
    "users:update": frozenset({ADMIN}),
    "users:toggle_active": frozenset({ADMIN}),
    "users:delete": frozenset({ADMIN}),
    # Owners may also change their own password; checked in the route
    "users:update_password": frozenset({ADMIN, ORGANIZER, ATTENDEE}),
    "auth:me": frozenset({ADMIN, ORGANIZER, ATTENDEE}),
}


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed hash in storage
        return False


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_user_token(user: User) -> str:
    return create_access_token(
        data={"sub": str(user.id), "email": user.email, "role": user.role}
    )


def decode_access_token(token: str) -> dict:
    """Verify signature and expiry. Raises UnauthorizedError on any failure."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as exc:
        raise UnauthorizedError("Token expired or invalid") from exc

    if payload.get("sub") is None:
        raise UnauthorizedError("Token expired or invalid")
    return payload


@dataclass(frozen=True)
class CurrentUser:
    id: int
    email: str
    name: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Resolve the bearer token to a live, active user."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError) as exc:
        raise UnauthorizedError("Token expired or invalid") from exc

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        logger.warning("token_subject_rejected", user_id=user_id)
        raise UnauthorizedError("User no longer exists or is inactive")

    return CurrentUser(id=user.id, email=user.email, name=user.name, role=user.role)


def authorize(operation: str):
    """Dependency factory: authenticate, then check the role allow-list for `operation`."""
    allowed = ENDPOINT_ROLES[operation]

    async def gate(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in allowed:
            logger.warning(
                "authorization_denied",
                operation=operation,
                user_id=current_user.id,
                role=current_user.role,
            )
            raise ForbiddenError()
        return current_user

    return gate
