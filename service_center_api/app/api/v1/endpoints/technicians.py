"""
Technician endpoints for API v1.

Every signed-in role can list technicians (job assignment needs them);
only administrators and managers change the list.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from service_center_api.app.core.enums import Role
from service_center_api.app.core.exceptions import http_error
from service_center_api.app.core.security import get_current_user, require_roles
from service_center_api.app.schemas.staff import TechnicianCreate, TechnicianRead, TechnicianUpdate
from service_center_api.app.services.staff_service import TechnicianService

router = APIRouter()

writers = require_roles(Role.ADMIN, Role.MANAGER)


@router.get("/", response_model=List[TechnicianRead])
async def list_technicians(
    active_only: bool = False,
    current_user: dict = Depends(get_current_user),
) -> List[TechnicianRead]:
    return await TechnicianService.list_technicians(active_only=active_only)


@router.get("/{technician_id}", response_model=TechnicianRead)
async def get_technician(technician_id: int, current_user: dict = Depends(get_current_user)) -> TechnicianRead:
    try:
        return await TechnicianService.get_technician(technician_id)
    except ValueError as e:
        raise http_error(e) from e


@router.post("/", response_model=TechnicianRead, status_code=status.HTTP_201_CREATED)
async def create_technician(body: TechnicianCreate, current_user: dict = Depends(writers)) -> TechnicianRead:
    return await TechnicianService.create_technician(body, current_user["user_id"])


@router.patch("/{technician_id}", response_model=TechnicianRead)
async def update_technician(
    technician_id: int,
    body: TechnicianUpdate,
    current_user: dict = Depends(writers),
) -> TechnicianRead:
    updates = {
        k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None or k == "specialization"
    }
    try:
        return await TechnicianService.update_technician(technician_id, updates, current_user["user_id"])
    except ValueError as e:
        raise http_error(e) from e


@router.delete("/{technician_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_technician(technician_id: int, current_user: dict = Depends(writers)) -> None:
    try:
        await TechnicianService.delete_technician(technician_id, current_user["user_id"])
    except ValueError as e:
        raise http_error(e) from e
