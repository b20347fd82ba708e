"""
Pydantic models for the loyalty program.

Customers accumulate points from job card payments; points are spent
on rewards through redemptions.  ``total_points`` is the lifetime total
that decides the tier, ``available_points`` is the spendable balance.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from ..core.enums import LoyaltyTier, RedemptionStatus, RewardCategory, TransactionType


class CustomerBase(BaseModel):
    name: str = Field(..., min_length=1, examples=["Rajesh Kumar"])
    phone: str = Field(..., min_length=10, examples=["0771234567"])
    email: Optional[str] = None
    vehicle_numbers: List[str] = Field(default_factory=list, examples=[["NP-2341"]])


class CustomerCreate(CustomerBase):
    pass


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = Field(None, min_length=10)
    email: Optional[str] = None
    vehicle_numbers: Optional[List[str]] = None


class CustomerRead(CustomerBase):
    id: int
    total_points: int
    available_points: int
    tier: LoyaltyTier
    total_spent: float
    created_at: str
    updated_at: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }


class EarnRequest(BaseModel):
    """Credit points for money spent, optionally tied to a job card."""

    amount: float = Field(..., examples=[12500])
    job_card_id: Optional[int] = None
    description: Optional[str] = None


class BonusRequest(BaseModel):
    points: int = Field(..., gt=0, examples=[100])
    description: Optional[str] = Field(None, examples=["Birthday bonus"])


class RedeemRequest(BaseModel):
    reward_id: int


class RewardBase(BaseModel):
    name: str = Field(..., min_length=1, examples=["10% Service Discount"])
    description: Optional[str] = None
    points_cost: int = Field(..., gt=0, examples=[500])
    category: RewardCategory
    stock: Optional[int] = Field(None, ge=0, description="null means unlimited")
    is_active: bool = True


class RewardCreate(RewardBase):
    pass


class RewardUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    points_cost: Optional[int] = Field(None, gt=0)
    category: Optional[RewardCategory] = None
    stock: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class RewardRead(RewardBase):
    id: int
    created_at: str
    updated_at: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }


class TransactionRead(BaseModel):
    id: int
    customer_id: int
    type: TransactionType
    points: int
    amount: Optional[float] = None
    job_card_id: Optional[int] = None
    redemption_id: Optional[int] = None
    description: Optional[str] = None
    created_by: Optional[int] = None
    created_at: str


class RedemptionRead(BaseModel):
    id: int
    customer_id: int
    customer_name: Optional[str] = None
    reward_id: int
    reward_name: Optional[str] = None
    points_spent: int
    status: RedemptionStatus
    created_by: Optional[int] = None
    created_at: str
    resolved_at: Optional[str] = None
    resolved_by: Optional[int] = None


class RedemptionStatusUpdate(BaseModel):
    status: RedemptionStatus


class EarnResult(BaseModel):
    customer: CustomerRead
    transaction: TransactionRead


class RedeemResult(BaseModel):
    customer: CustomerRead
    redemption: RedemptionRead


class TierInfo(BaseModel):
    tier: LoyaltyTier
    min_points: int
    multiplier: float


class LoyaltyStats(BaseModel):
    total_customers: int
    customers_by_tier: dict
    points_issued: int
    points_outstanding: int
    pending_redemptions: int
    fulfilled_redemptions: int
