"""
User administration endpoints for API v1.

Only administrators manage accounts.  An administrator cannot delete
their own account or the primary administrator.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from service_center_api.app.core.enums import Role
from service_center_api.app.core.exceptions import http_error
from service_center_api.app.core.security import require_roles
from service_center_api.app.schemas.user import UserCreate, UserRead, UserUpdate
from service_center_api.app.services.user_service import UserService

router = APIRouter()

admin_only = require_roles(Role.ADMIN)


@router.get("/", response_model=List[UserRead])
async def list_users(current_user: dict = Depends(admin_only)) -> List[UserRead]:
    return await UserService.list_users()


@router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_user(user: UserCreate, current_user: dict = Depends(admin_only)) -> UserRead:
    """Create an account.  Usernames are unique (409 on conflict)."""
    try:
        return await UserService.create_user(user, current_user["user_id"])
    except ValueError as e:
        raise http_error(e) from e


@router.get("/{user_id}", response_model=UserRead)
async def get_user(user_id: int, current_user: dict = Depends(admin_only)) -> UserRead:
    try:
        return await UserService.get_user_by_id(user_id)
    except ValueError as e:
        raise http_error(e) from e


@router.patch("/{user_id}", response_model=UserRead)
async def update_user(user_id: int, body: UserUpdate, current_user: dict = Depends(admin_only)) -> UserRead:
    """Update profile, password, role or disabled flag of an account.

    Disabling an account or changing its password signs it out
    everywhere.
    """
    try:
        updates = {
            key: value
            for key, value in body.model_dump(exclude_unset=True).items()
            if value is not None or key in ("full_name", "staff_id")
        }
        return await UserService.update_user(user_id, updates, current_user["user_id"])
    except ValueError as e:
        raise http_error(e) from e


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: int, current_user: dict = Depends(admin_only)) -> None:
    try:
        await UserService.delete_user(user_id, current_user["user_id"])
    except ValueError as e:
        raise http_error(e) from e
