"""
Authentication endpoints: register, login and the current-user profile.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from checkin.db.session import get_db
from checkin.schemas.user import AuthResponse, UserLogin, UserResponse, UserSignup
from checkin.services import auth_service, user_service
from checkin.core.security import CurrentUser, authorize

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(signup: UserSignup, db: AsyncSession = Depends(get_db)):
    """Create an attendee account and return a token for it."""
    return await auth_service.register(db, signup)


@router.post("/login", response_model=AuthResponse)
async def login(login_data: UserLogin, db: AsyncSession = Depends(get_db)):
    """Authenticate and receive a JWT access token."""
    return await auth_service.login(db, login_data.email, login_data.password)


@router.get("/me", response_model=UserResponse)
async def me(
    current_user: CurrentUser = Depends(authorize("auth:me")),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.get_user(db, current_user.id)
