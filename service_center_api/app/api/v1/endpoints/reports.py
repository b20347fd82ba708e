"""
Dashboard statistics and report endpoints for API v1.

Revenue figures are only included for administrators and managers.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from service_center_api.app.core.enums import FRONT_DESK_ROLES, Role
from service_center_api.app.core.security import can_view_revenue, get_current_user, require_roles
from service_center_api.app.services.report_service import ReportService

statistics_router = APIRouter()
router = APIRouter()

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


@statistics_router.get("/")
async def dashboard_statistics(current_user: dict = Depends(get_current_user)) -> Dict[str, Any]:
    """Job counts for the dashboard.

    ``revenue`` is the total cost of completed and delivered jobs.
    """
    return await ReportService.statistics(show_revenue=can_view_revenue(current_user))


@router.get("/summary")
async def report_summary(
    date_from: Optional[str] = Query(None, pattern=DATE_PATTERN),
    date_to: Optional[str] = Query(None, pattern=DATE_PATTERN),
    current_user: dict = Depends(require_roles(*FRONT_DESK_ROLES)),
) -> Dict[str, Any]:
    return await ReportService.summary(date_from, date_to, show_revenue=can_view_revenue(current_user))


@router.get("/attendance")
async def attendance_report(
    date_from: Optional[str] = Query(None, pattern=DATE_PATTERN),
    date_to: Optional[str] = Query(None, pattern=DATE_PATTERN),
    current_user: dict = Depends(require_roles(Role.ADMIN, Role.MANAGER)),
) -> List[Dict[str, Any]]:
    return await ReportService.attendance_report(date_from, date_to)
