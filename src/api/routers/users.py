"""User endpoints."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user, require_role
from core.roles import Role, has_role
from models.user import User
from schemas.user import UserResponse, UserUpdate
from services import user_service


router = APIRouter(prefix="/users", tags=["users"])


def _user_not_found(user_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"User #{user_id} not found",
    )


def _check_can_access(current_user: User, user_id: int) -> None:
    """Users may only reach their own record; admins may reach any."""
    # 404 rather than 403 so ids of other users are not confirmed
    if current_user.id != user_id and not has_role(current_user.role, Role.ADMIN):
        raise _user_not_found(user_id)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Get the current authenticated user's info."""
    return UserResponse.model_validate(current_user)


@router.get("/", response_model=list[UserResponse])
async def list_users(
    _admin: User = Depends(require_role(Role.ADMIN)),
    db: AsyncSession = Depends(get_async_session),
) -> list[UserResponse]:
    """List all users. Admin only."""
    users = await user_service.list_users(db)
    return [UserResponse.model_validate(u) for u in users]


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> UserResponse:
    """Get a user by ID. Users can read themselves; admins can read anyone."""
    _check_can_access(current_user, user_id)
    user = await user_service.get_user(db, user_id)
    if user is None:
        raise _user_not_found(user_id)
    return UserResponse.model_validate(user)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> UserResponse:
    """Update a user's email or name. Users can edit themselves; admins can edit anyone."""
    _check_can_access(current_user, user_id)
    user = await user_service.update_user(db, user_id, data)
    if user is None:
        raise _user_not_found(user_id)
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    _admin: User = Depends(require_role(Role.ADMIN)),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete a user and everything they own. Admin only."""
    deleted = await user_service.delete_user(db, user_id)
    if not deleted:
        raise _user_not_found(user_id)
