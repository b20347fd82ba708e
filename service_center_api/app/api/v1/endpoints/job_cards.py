"""
Job card endpoints for API v1.

Front desk roles (Admin, Manager, Job Card) open and edit job cards;
technicians and service staff only move them through the workflow.
Monetary fields are removed from every response unless the caller is
an Admin or Manager.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status

from service_center_api.app.core.enums import FRONT_DESK_ROLES, JobStatus, Role, ServiceCategory
from service_center_api.app.core.exceptions import http_error
from service_center_api.app.core.security import can_view_revenue, get_current_user, require_roles
from service_center_api.app.schemas.job_card import (
    AssignmentUpdate,
    JobCardCreate,
    JobCardRead,
    JobCardUpdate,
    StatusUpdate,
    redact_revenue,
)
from service_center_api.app.services.job_card_service import JobCardService, redact_audit_details

router = APIRouter()
bays_router = APIRouter()

front_desk = require_roles(*FRONT_DESK_ROLES)


def _present(job: JobCardRead, current_user: dict) -> Dict[str, Any]:
    return redact_revenue(job.model_dump(mode="json"), can_view_revenue(current_user))


@router.get("/")
async def list_job_cards(
    status_filter: Optional[JobStatus] = Query(None, alias="status"),
    bay: Optional[str] = None,
    service_category: Optional[ServiceCategory] = None,
    q: Optional[str] = Query(None, description="Customer name, registration, phone or job number"),
    date_from: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    date_to: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    """List job cards, newest first.

    Technicians and service staff only see jobs that are still pending
    or in progress; service staff only those in the wash bay.
    """
    jobs = await JobCardService.list_job_cards(
        current_user=current_user,
        status=status_filter.value if status_filter else None,
        bay=bay,
        service_category=service_category.value if service_category else None,
        q=q,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )
    return [_present(job, current_user) for job in jobs]


@router.get("/recent")
async def recent_job_cards(
    limit: int = Query(5, ge=1, le=50),
    current_user: dict = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    jobs = await JobCardService.list_job_cards(current_user=current_user, limit=limit)
    return [_present(job, current_user) for job in jobs]


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_job_card(job: JobCardCreate, current_user: dict = Depends(front_desk)) -> Dict[str, Any]:
    try:
        created = await JobCardService.create_job_card(job, current_user)
    except ValueError as e:
        raise http_error(e) from e
    return _present(created, current_user)


@router.get("/{job_id}")
async def get_job_card(job_id: int, current_user: dict = Depends(get_current_user)) -> Dict[str, Any]:
    try:
        job = await JobCardService.get_job_card(job_id, current_user)
    except ValueError as e:
        raise http_error(e) from e
    return _present(job, current_user)


@router.patch("/{job_id}")
async def update_job_card(
    job_id: int,
    body: JobCardUpdate,
    current_user: dict = Depends(front_desk),
) -> Dict[str, Any]:
    """Edit the descriptive fields of a job card.

    Changing the category is refused when the job's current status is
    not valid for the new category.
    """
    try:
        job = await JobCardService.update_job_card(job_id, body.model_dump(exclude_unset=True), current_user)
    except ValueError as e:
        raise http_error(e) from e
    return _present(job, current_user)


@router.patch("/{job_id}/status")
async def update_job_status(
    job_id: int,
    body: StatusUpdate,
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    """Move a job card to a new status.

    * 400: status not valid for the job's service category
    * 403: technicians and service staff asking for anything other
      than ``In Progress`` or ``Completed``
    * 409: leaving ``Delivered``, or delivering a job that is not
      ``Completed``
    """
    try:
        job = await JobCardService.update_status(job_id, body.status, current_user)
    except ValueError as e:
        raise http_error(e) from e
    return _present(job, current_user)


@router.patch("/{job_id}/assignment")
async def update_job_assignment(
    job_id: int,
    body: AssignmentUpdate,
    current_user: dict = Depends(front_desk),
) -> Dict[str, Any]:
    """Assign a bay and/or technician.  A technician bay holds one active job."""
    try:
        job = await JobCardService.update_assignment(job_id, body.model_dump(exclude_unset=True), current_user)
    except ValueError as e:
        raise http_error(e) from e
    return _present(job, current_user)


@router.delete("/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_job_card(
    job_id: int,
    current_user: dict = Depends(require_roles(Role.ADMIN, Role.MANAGER)),
) -> None:
    try:
        await JobCardService.delete_job_card(job_id, current_user)
    except ValueError as e:
        raise http_error(e) from e


@router.get("/{job_id}/history")
async def job_card_history(job_id: int, current_user: dict = Depends(front_desk)) -> List[Dict[str, Any]]:
    """Audit trail of a job card, oldest entry first."""
    try:
        entries = await JobCardService.history(job_id)
    except ValueError as e:
        raise http_error(e) from e
    if not can_view_revenue(current_user):
        entries = [{**entry, "details": redact_audit_details(entry["details"])} for entry in entries]
    return entries


@bays_router.get("/status")
async def bay_status(current_user: dict = Depends(get_current_user)) -> List[Dict[str, Any]]:
    """Occupancy of every bay with the active jobs in it."""
    show_revenue = can_view_revenue(current_user)
    result = []
    for bay in await JobCardService.bay_status():
        data = bay.model_dump(mode="json")
        data["job_cards"] = [redact_revenue(job, show_revenue) for job in data["job_cards"]]
        result.append(data)
    return result
