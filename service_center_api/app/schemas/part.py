"""
Pydantic models for the parts catalog.
"""

from typing import Optional

from pydantic import BaseModel, Field


class PartBase(BaseModel):
    part_number: str = Field(..., min_length=1, examples=["15412-KWN-901"])
    name: str = Field(..., min_length=1, examples=["Oil Filter"])
    price: float = Field(..., ge=0, examples=[850])


class PartCreate(PartBase):
    pass


class PartUpdate(BaseModel):
    part_number: Optional[str] = Field(None, min_length=1)
    name: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, ge=0)


class PartRead(PartBase):
    id: int
    created_at: str
    updated_at: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }
