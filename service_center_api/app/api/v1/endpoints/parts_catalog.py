"""
Parts catalog endpoints for API v1.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from service_center_api.app.core.enums import Role
from service_center_api.app.core.exceptions import http_error
from service_center_api.app.core.security import get_current_user, require_roles
from service_center_api.app.schemas.part import PartCreate, PartRead, PartUpdate
from service_center_api.app.services.parts_service import PartsService

router = APIRouter()

writers = require_roles(Role.ADMIN, Role.MANAGER)


@router.get("/", response_model=List[PartRead])
async def list_parts(
    q: Optional[str] = Query(None, description="Search part number or name"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(get_current_user),
) -> List[PartRead]:
    return await PartsService.list_parts(q=q, limit=limit, offset=offset)


@router.get("/{part_id}", response_model=PartRead)
async def get_part(part_id: int, current_user: dict = Depends(get_current_user)) -> PartRead:
    try:
        return await PartsService.get_part(part_id)
    except ValueError as e:
        raise http_error(e) from e


@router.post("/", response_model=PartRead, status_code=status.HTTP_201_CREATED)
async def create_part(body: PartCreate, current_user: dict = Depends(writers)) -> PartRead:
    try:
        return await PartsService.create_part(body, current_user["user_id"])
    except ValueError as e:
        raise http_error(e) from e


@router.patch("/{part_id}", response_model=PartRead)
async def update_part(part_id: int, body: PartUpdate, current_user: dict = Depends(writers)) -> PartRead:
    updates = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}
    try:
        return await PartsService.update_part(part_id, updates, current_user["user_id"])
    except ValueError as e:
        raise http_error(e) from e


@router.delete("/{part_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_part(part_id: int, current_user: dict = Depends(writers)) -> None:
    try:
        await PartsService.delete_part(part_id, current_user["user_id"])
    except ValueError as e:
        raise http_error(e) from e
