"""
Audit log endpoints for API v1.

Every write in the system leaves an entry in the append-only audit log.
Only administrators may browse it.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from service_center_api.app.core.enums import Role
from service_center_api.app.core.security import require_roles
from service_center_api.app.services.audit_service import AuditService

router = APIRouter()


@router.get("/logs")
async def list_audit_logs(
    user_id: Optional[int] = Query(None, description="Filter by acting user ID"),
    object_type: Optional[str] = Query(None, description="Filter by object type (job_card, staff, reward, ...)"),
    object_id: Optional[int] = Query(None, description="Filter by object ID"),
    action: Optional[str] = Query(None, description="Filter by action (create, update, status_change, ...)"),
    start_date: Optional[str] = Query(None, description="Start date (YYYY-MM-DD), inclusive"),
    end_date: Optional[str] = Query(None, description="End date (YYYY-MM-DD), inclusive"),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of logs to return"),
    offset: int = Query(0, ge=0, description="Number of logs to skip"),
    current_user: dict = Depends(require_roles(Role.ADMIN)),
) -> List[dict]:
    """Retrieve audit logs, newest first."""
    return await AuditService.list_logs(
        user_id=user_id,
        object_type=object_type,
        object_id=object_id,
        action=action,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
