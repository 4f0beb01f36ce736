"""
User administration endpoints. Admin only, except changing your own password.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from checkin.db.session import get_db
from checkin.models.user import UserRole
from checkin.schemas.user import (
    PasswordUpdate,
    UserCreate,
    UserResponse,
    UserStatistics,
    UserUpdate,
)
from checkin.services import user_service
from checkin.core.exceptions import ForbiddenError
from checkin.core.security import CurrentUser, authorize

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user_endpoint(
    user_data: UserCreate,
    _: CurrentUser = Depends(authorize("users:create")),
    db: AsyncSession = Depends(get_db),
):
    """Provision an account with any role."""
    return await user_service.create_user(db, user_data)


@router.get("/", response_model=list[UserResponse])
async def list_users_endpoint(
    _: CurrentUser = Depends(authorize("users:list")),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.list_users(db)


@router.get("/statistics", response_model=UserStatistics)
async def statistics_endpoint(
    _: CurrentUser = Depends(authorize("users:statistics")),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.get_statistics(db)


@router.get("/role/{role}", response_model=list[UserResponse])
async def list_by_role_endpoint(
    role: UserRole,
    _: CurrentUser = Depends(authorize("users:list_by_role")),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.list_users_by_role(db, role)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user_endpoint(
    user_id: int,
    _: CurrentUser = Depends(authorize("users:read")),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.get_user(db, user_id)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user_endpoint(
    user_id: int,
    update_data: UserUpdate,
    _: CurrentUser = Depends(authorize("users:update")),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.update_user(db, user_id, update_data)


@router.put("/{user_id}/toggle-active", response_model=UserResponse)
async def toggle_active_endpoint(
    user_id: int,
    _: CurrentUser = Depends(authorize("users:toggle_active")),
    db: AsyncSession = Depends(get_db),
):
    """Suspend or reinstate an account without deleting its history."""
    return await user_service.toggle_active(db, user_id)


@router.put("/{user_id}/password", status_code=status.HTTP_204_NO_CONTENT)
async def update_password_endpoint(
    user_id: int,
    body: PasswordUpdate,
    current_user: CurrentUser = Depends(authorize("users:update_password")),
    db: AsyncSession = Depends(get_db),
):
    if not current_user.is_admin and current_user.id != user_id:
        raise ForbiddenError("You can only change your own password")
    await user_service.update_password(db, user_id, body.new_password)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user_endpoint(
    user_id: int,
    _: CurrentUser = Depends(authorize("users:delete")),
    db: AsyncSession = Depends(get_db),
):
    """Hard delete. 409 while the user still has registrations or announcements."""
    await user_service.delete_user(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
