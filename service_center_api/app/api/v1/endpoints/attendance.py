"""
Attendance endpoints for API v1.

Administrators and managers take attendance.  A manager can only
change today's records; older (or future) records are admin-only.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from service_center_api.app.core.enums import Role
from service_center_api.app.core.exceptions import http_error
from service_center_api.app.core.security import require_roles
from service_center_api.app.schemas.attendance import (
    AttendanceCreate,
    AttendanceRead,
    AttendanceSummary,
    AttendanceUpdate,
)
from service_center_api.app.services.attendance_service import AttendanceService

router = APIRouter()

managers = require_roles(Role.ADMIN, Role.MANAGER)

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


@router.get("/", response_model=List[AttendanceRead])
async def list_attendance(
    date: Optional[str] = Query(None, pattern=DATE_PATTERN, description="Defaults to today"),
    current_user: dict = Depends(managers),
) -> List[AttendanceRead]:
    return await AttendanceService.list_for_date(date)


@router.get("/today", response_model=List[AttendanceRead])
async def today_attendance(current_user: dict = Depends(managers)) -> List[AttendanceRead]:
    return await AttendanceService.list_for_date()


@router.get("/summary", response_model=AttendanceSummary)
async def attendance_summary(
    date: Optional[str] = Query(None, pattern=DATE_PATTERN),
    current_user: dict = Depends(managers),
) -> AttendanceSummary:
    """Present (including late), absent and on-leave counts for a day."""
    return await AttendanceService.summary(date)


@router.get("/staff/{staff_id}", response_model=List[AttendanceRead])
async def staff_attendance(
    staff_id: int,
    date_from: Optional[str] = Query(None, pattern=DATE_PATTERN),
    date_to: Optional[str] = Query(None, pattern=DATE_PATTERN),
    current_user: dict = Depends(managers),
) -> List[AttendanceRead]:
    try:
        return await AttendanceService.list_for_staff(staff_id, date_from, date_to)
    except ValueError as e:
        raise http_error(e) from e


@router.post("/", response_model=AttendanceRead, status_code=status.HTTP_201_CREATED)
async def mark_attendance(body: AttendanceCreate, current_user: dict = Depends(managers)) -> AttendanceRead:
    """Record attendance.  One record per staff member per day (409)."""
    try:
        return await AttendanceService.mark(body, current_user)
    except ValueError as e:
        raise http_error(e) from e


@router.patch("/{record_id}", response_model=AttendanceRead)
async def update_attendance(
    record_id: int,
    body: AttendanceUpdate,
    current_user: dict = Depends(managers),
) -> AttendanceRead:
    updates = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None or k != "status"}
    try:
        return await AttendanceService.update(record_id, updates, current_user)
    except ValueError as e:
        raise http_error(e) from e
