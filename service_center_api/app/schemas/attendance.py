"""
Pydantic models for daily staff attendance.

Dates use ``YYYY-MM-DD`` and clock times ``HH:MM``.
"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field

from ..core.enums import AttendanceStatus

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class AttendanceCreate(BaseModel):
    staff_id: int
    date: Optional[dt.date] = Field(None, description="Defaults to today")
    status: AttendanceStatus
    check_in_time: Optional[str] = Field(None, pattern=TIME_PATTERN, examples=["08:30"])
    check_out_time: Optional[str] = Field(None, pattern=TIME_PATTERN, examples=["17:30"])
    notes: Optional[str] = None


class AttendanceUpdate(BaseModel):
    status: Optional[AttendanceStatus] = None
    check_in_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    check_out_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    notes: Optional[str] = None


class AttendanceRead(BaseModel):
    id: int
    staff_id: int
    staff_name: Optional[str] = None
    date: str
    status: AttendanceStatus
    check_in_time: Optional[str] = None
    check_out_time: Optional[str] = None
    notes: Optional[str] = None
    created_at: str
    updated_at: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }


class AttendanceSummary(BaseModel):
    date: str
    present: int
    absent: int
    leave: int
    total_staff: int
