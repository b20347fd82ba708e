"""
Pydantic models for job cards.

``JobCardCreate`` and ``JobCardUpdate`` describe request bodies;
``JobCardRead`` is the full record.  Monetary fields are part of
``JobCardRead`` but endpoints strip them for roles that may not see
revenue, so clients must treat them as optional.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..core.enums import JobStatus, ServiceCategory

REVENUE_FIELDS = ("cost", "advance_payment", "remaining_payment")


class JobCardBase(BaseModel):
    customer_name: str = Field(..., min_length=1, examples=["Rajesh Kumar"])
    phone: str = Field(..., min_length=10, examples=["0771234567"])
    bike_model: str = Field(..., min_length=1, examples=["Shine"])
    registration: str = Field(..., min_length=1, examples=["NP-2341"])
    odometer: int = Field(..., ge=0, examples=[15420])
    service_category: ServiceCategory
    service_type: str = Field(..., examples=["Regular Service"])
    estimated_time: Optional[str] = Field(None, examples=["45 mins"])
    repair_details: Optional[str] = None
    cost: float = Field(..., ge=0, examples=[1000])


class JobCardCreate(JobCardBase):
    """Schema for opening a job card.

    ``bay`` and ``technician_id`` may be supplied up front; the same
    occupancy rules as ``PATCH /job-cards/{id}/assignment`` apply.
    """

    status: JobStatus = JobStatus.PENDING
    bay: Optional[str] = Field(None, examples=["Bay 1"])
    technician_id: Optional[int] = None


class JobCardUpdate(BaseModel):
    """Partial update of the descriptive fields of a job card.

    Status and assignment have dedicated endpoints and are not accepted
    here.
    """

    customer_name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = Field(None, min_length=10)
    bike_model: Optional[str] = Field(None, min_length=1)
    registration: Optional[str] = Field(None, min_length=1)
    odometer: Optional[int] = Field(None, ge=0)
    service_category: Optional[ServiceCategory] = None
    service_type: Optional[str] = None
    estimated_time: Optional[str] = None
    repair_details: Optional[str] = None
    cost: Optional[float] = Field(None, ge=0)


class StatusUpdate(BaseModel):
    status: JobStatus


class AssignmentUpdate(BaseModel):
    """New bay and/or technician.  Send ``null`` to clear a value."""

    bay: Optional[str] = None
    technician_id: Optional[int] = None


class JobCardRead(JobCardBase):
    id: int
    job_number: str
    status: JobStatus
    bay: Optional[str] = None
    technician_id: Optional[int] = None
    technician_name: Optional[str] = None
    advance_payment: float
    remaining_payment: float
    payment_status: str
    created_by: Optional[int] = None
    created_at: str
    updated_at: Optional[str] = None
    completed_at: Optional[str] = None
    delivered_at: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }


class BayStatus(BaseModel):
    bay: str
    is_wash_bay: bool
    is_occupied: bool
    job_cards: List[JobCardRead] = []


def redact_revenue(data: Dict[str, Any], show_revenue: bool) -> Dict[str, Any]:
    """Drop monetary fields from a serialized job card unless allowed."""
    if show_revenue:
        return data
    return {key: value for key, value in data.items() if key not in REVENUE_FIELDS}
