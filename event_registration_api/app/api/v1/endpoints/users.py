"""
User endpoints for API v1.

Every authenticated user can read and edit their own profile.  The
remaining routes are for administrators: listing accounts, switching
an account on or off and deleting it.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from event_registration_api.app.core.security import Identity, get_current_user, require_roles
from event_registration_api.app.schemas.user import Role, UserRead, UserStatusUpdate, UserUpdate
from event_registration_api.app.services.user_service import UserService


router = APIRouter()


@router.get("/me", response_model=UserRead)
async def read_current_user(current_user: Identity = Depends(get_current_user)) -> UserRead:
    return await UserService.get_user(current_user.user_id)


@router.put("/me", response_model=UserRead)
async def update_current_user(
    updates: UserUpdate,
    current_user: Identity = Depends(get_current_user),
) -> UserRead:
    """Update name, mobile number or password of the logged-in user."""
    return await UserService.update_profile(current_user.user_id, updates)


@router.get("/", response_model=List[UserRead])
async def list_users(
    role: Optional[Role] = Query(None, description="Only users with this role"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    current_user: Identity = Depends(require_roles(Role.ADMIN)),
) -> List[UserRead]:
    return await UserService.list_users(role=role, limit=limit, offset=offset)


@router.get("/{user_id}", response_model=UserRead)
async def get_user(
    user_id: int,
    current_user: Identity = Depends(require_roles(Role.ADMIN)),
) -> UserRead:
    return await UserService.get_user(user_id)


@router.put("/{user_id}/status", response_model=UserRead)
async def set_user_status(
    user_id: int,
    payload: UserStatusUpdate,
    current_user: Identity = Depends(require_roles(Role.ADMIN)),
) -> UserRead:
    """Activate or deactivate an account.

    A deactivated user can no longer log in and existing tokens stop
    working.  Administrators cannot deactivate themselves.
    """
    return await UserService.set_active(user_id, payload.is_active, current_user.user_id)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    current_user: Identity = Depends(require_roles(Role.ADMIN)),
) -> None:
    """Delete an account with its registrations and, for organizers, their events."""
    await UserService.delete_user(user_id, current_user.user_id)
    return None
