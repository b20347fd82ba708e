"""
Staff directory endpoints for API v1.

Administrators maintain the directory; managers may read it.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from service_center_api.app.core.enums import Role
from service_center_api.app.core.exceptions import http_error
from service_center_api.app.core.security import require_roles
from service_center_api.app.schemas.staff import StaffCreate, StaffRead, StaffUpdate
from service_center_api.app.services.staff_service import StaffService

router = APIRouter()

admin_only = require_roles(Role.ADMIN)
readers = require_roles(Role.ADMIN, Role.MANAGER)


@router.get("/", response_model=List[StaffRead])
async def list_staff(active_only: bool = False, current_user: dict = Depends(readers)) -> List[StaffRead]:
    return await StaffService.list_staff(active_only=active_only)


@router.get("/{staff_id}", response_model=StaffRead)
async def get_staff(staff_id: int, current_user: dict = Depends(readers)) -> StaffRead:
    try:
        return await StaffService.get_staff(staff_id)
    except ValueError as e:
        raise http_error(e) from e


@router.post("/", response_model=StaffRead, status_code=status.HTTP_201_CREATED)
async def create_staff(body: StaffCreate, current_user: dict = Depends(admin_only)) -> StaffRead:
    return await StaffService.create_staff(body, current_user["user_id"])


@router.patch("/{staff_id}", response_model=StaffRead)
async def update_staff(staff_id: int, body: StaffUpdate, current_user: dict = Depends(admin_only)) -> StaffRead:
    updates = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None or k == "email"}
    try:
        return await StaffService.update_staff(staff_id, updates, current_user["user_id"])
    except ValueError as e:
        raise http_error(e) from e


@router.delete("/{staff_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_staff(staff_id: int, current_user: dict = Depends(admin_only)) -> None:
    """Delete a staff member and their attendance records."""
    try:
        await StaffService.delete_staff(staff_id, current_user["user_id"])
    except ValueError as e:
        raise http_error(e) from e
