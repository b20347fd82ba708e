"""
Pydantic models for the staff directory and technicians.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ..core.enums import ROLE_NAMES


class StaffBase(BaseModel):
    name: str = Field(..., min_length=1, examples=["Ramesh Nair"])
    phone: str = Field(..., min_length=10, examples=["0773456789"])
    email: Optional[str] = Field(None, examples=["ramesh@hondajaffna.lk"])
    role: str = Field(..., examples=["Job Card"])
    work_skills: List[str] = Field(default_factory=list, examples=[["Customer Service"]])
    is_active: bool = True

    @field_validator("role")
    @classmethod
    def _known_role(cls, value: str) -> str:
        if value not in ROLE_NAMES.values():
            raise ValueError(f"role must be one of: {', '.join(ROLE_NAMES.values())}")
        return value


class StaffCreate(StaffBase):
    pass


class StaffUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = Field(None, min_length=10)
    email: Optional[str] = None
    role: Optional[str] = None
    work_skills: Optional[List[str]] = None
    is_active: Optional[bool] = None

    @field_validator("role")
    @classmethod
    def _known_role(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in ROLE_NAMES.values():
            raise ValueError(f"role must be one of: {', '.join(ROLE_NAMES.values())}")
        return value


class StaffRead(StaffBase):
    id: int
    created_at: str
    updated_at: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }


class TechnicianBase(BaseModel):
    name: str = Field(..., min_length=1, examples=["Kannan Selvam"])
    phone: str = Field(..., min_length=10, examples=["0771111111"])
    specialization: Optional[str] = Field(None, examples=["Engine Repair"])
    is_active: bool = True


class TechnicianCreate(TechnicianBase):
    pass


class TechnicianUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = Field(None, min_length=10)
    specialization: Optional[str] = None
    is_active: Optional[bool] = None


class TechnicianRead(TechnicianBase):
    id: int
    created_at: str
    updated_at: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }
