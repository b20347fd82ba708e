"""
Job card status workflow and payment rules.

These are pure functions with no database access so the rules can be
checked in isolation.  ``JobCardService`` calls them before writing.

The workflow order is ``Pending -> In Progress -> (Oil Change) ->
Quality Check -> Completed -> Delivered``.  Which of those statuses a
job may take depends on its service category, and technician/service
roles may only move a job to ``In Progress`` or ``Completed``.
"""

from __future__ import annotations

from typing import Optional

from ..core.enums import (
    LIMITED_ROLES,
    SERVICE_TYPES,
    JobStatus,
    PaymentStatus,
    ServiceCategory,
)
from ..core.exceptions import ConflictError, InvalidTransitionError, PermissionDeniedError

_ALL_STATUSES: tuple[JobStatus, ...] = tuple(JobStatus)

ALLOWED_STATUSES: dict[ServiceCategory, tuple[JobStatus, ...]] = {
    ServiceCategory.PAID: _ALL_STATUSES,
    ServiceCategory.COMPANY_FREE: _ALL_STATUSES,
    ServiceCategory.REPAIR: tuple(s for s in _ALL_STATUSES if s is not JobStatus.OIL_CHANGE),
}

LIMITED_ROLE_TARGETS = frozenset({JobStatus.IN_PROGRESS, JobStatus.COMPLETED})

# Advance share collected up front for repair jobs.
REPAIR_ADVANCE_RATIO = 0.5


def allowed_statuses(category: ServiceCategory | str) -> tuple[JobStatus, ...]:
    return ALLOWED_STATUSES[ServiceCategory(category)]


def validate_service_type(category: ServiceCategory | str, service_type: str) -> None:
    category = ServiceCategory(category)
    if service_type not in SERVICE_TYPES[category]:
        raise ValueError(
            f"Service type '{service_type}' does not belong to category '{category.value}'"
        )


def check_status_change(
    current: JobStatus | str,
    target: JobStatus | str,
    category: ServiceCategory | str,
    role_id: Optional[int],
) -> bool:
    """Validate a status change.

    Returns ``False`` when ``target`` equals ``current`` (nothing to do)
    and ``True`` when the change may be applied.  Raises
    ``PermissionDeniedError`` for a limited role asking for anything but
    ``In Progress``/``Completed`` or reopening a completed job,
    ``InvalidTransitionError`` when the target is not legal for the
    category, and ``ConflictError`` when leaving ``Delivered`` or
    delivering a job that is not completed.
    """
    current = JobStatus(current)
    target = JobStatus(target)
    category = ServiceCategory(category)

    if role_id in LIMITED_ROLES and target not in LIMITED_ROLE_TARGETS:
        raise PermissionDeniedError(
            f"Your role may only set status to {JobStatus.IN_PROGRESS.value} or {JobStatus.COMPLETED.value}"
        )
    if role_id in LIMITED_ROLES and current is JobStatus.COMPLETED and target != current:
        raise PermissionDeniedError("Your role may not reopen a completed job")
    if target not in ALLOWED_STATUSES[category]:
        raise InvalidTransitionError(
            f"Status '{target.value}' is not allowed for {category.value} jobs"
        )
    if target == current:
        return False
    if current is JobStatus.DELIVERED:
        raise ConflictError("Job has already been delivered")
    if target is JobStatus.DELIVERED and current is not JobStatus.COMPLETED:
        raise ConflictError("Only completed jobs can be delivered")
    return True


def check_category_change(status: JobStatus | str, new_category: ServiceCategory | str) -> None:
    """Reject a category change that would leave the job in an illegal status."""
    status = JobStatus(status)
    new_category = ServiceCategory(new_category)
    if status not in ALLOWED_STATUSES[new_category]:
        raise InvalidTransitionError(
            f"A job in status '{status.value}' cannot become a {new_category.value} job"
        )


def calculate_payment(category: ServiceCategory | str, cost: float) -> dict:
    """Split the cost into advance and remaining payment.

    Repairs collect half up front; every other category is paid in full.
    """
    if ServiceCategory(category) is ServiceCategory.REPAIR:
        advance = round(cost * REPAIR_ADVANCE_RATIO, 2)
        return {
            "advance_payment": advance,
            "remaining_payment": round(cost - advance, 2),
            "payment_status": PaymentStatus.ADVANCE_PAID.value,
        }
    return {
        "advance_payment": cost,
        "remaining_payment": 0.0,
        "payment_status": PaymentStatus.PAID_IN_FULL.value,
    }
