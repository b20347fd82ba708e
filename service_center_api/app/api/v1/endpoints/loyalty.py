"""
Loyalty program endpoints for API v1.

The front desk (Admin, Manager, Job Card) enrols customers, credits
points for paid jobs and redeems rewards.  Managing the reward catalog,
granting bonus points, deleting customers and resolving redemptions is
reserved for administrators and managers.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from service_center_api.app.core.enums import FRONT_DESK_ROLES, RedemptionStatus, Role
from service_center_api.app.core.exceptions import http_error
from service_center_api.app.core.security import require_roles
from service_center_api.app.schemas.loyalty import (
    BonusRequest,
    CustomerCreate,
    CustomerRead,
    CustomerUpdate,
    EarnRequest,
    EarnResult,
    LoyaltyStats,
    RedeemRequest,
    RedeemResult,
    RedemptionRead,
    RedemptionStatusUpdate,
    RewardCreate,
    RewardRead,
    RewardUpdate,
    TierInfo,
    TransactionRead,
)
from service_center_api.app.services.loyalty_service import LoyaltyService

router = APIRouter()

front_desk = require_roles(*FRONT_DESK_ROLES)
managers = require_roles(Role.ADMIN, Role.MANAGER)


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------

@router.get("/customers", response_model=List[CustomerRead])
async def list_customers(
    q: Optional[str] = Query(None, description="Search name, phone or vehicle number"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(front_desk),
) -> List[CustomerRead]:
    return await LoyaltyService.list_customers(q=q, limit=limit, offset=offset)


@router.post("/customers", response_model=CustomerRead, status_code=status.HTTP_201_CREATED)
async def create_customer(body: CustomerCreate, current_user: dict = Depends(front_desk)) -> CustomerRead:
    try:
        return await LoyaltyService.create_customer(body, current_user["user_id"])
    except ValueError as e:
        raise http_error(e) from e


@router.get("/customers/{customer_id}", response_model=CustomerRead)
async def get_customer(customer_id: int, current_user: dict = Depends(front_desk)) -> CustomerRead:
    try:
        return await LoyaltyService.get_customer(customer_id)
    except ValueError as e:
        raise http_error(e) from e


@router.patch("/customers/{customer_id}", response_model=CustomerRead)
async def update_customer(
    customer_id: int,
    body: CustomerUpdate,
    current_user: dict = Depends(front_desk),
) -> CustomerRead:
    updates = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None or k == "email"}
    try:
        return await LoyaltyService.update_customer(customer_id, updates, current_user["user_id"])
    except ValueError as e:
        raise http_error(e) from e


@router.delete("/customers/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_customer(customer_id: int, current_user: dict = Depends(managers)) -> None:
    try:
        await LoyaltyService.delete_customer(customer_id, current_user["user_id"])
    except ValueError as e:
        raise http_error(e) from e


@router.get("/customers/{customer_id}/transactions", response_model=List[TransactionRead])
async def customer_transactions(
    customer_id: int,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(front_desk),
) -> List[TransactionRead]:
    try:
        return await LoyaltyService.list_transactions(customer_id, limit=limit, offset=offset)
    except ValueError as e:
        raise http_error(e) from e


@router.post("/customers/{customer_id}/earn", response_model=EarnResult)
async def earn_points(customer_id: int, body: EarnRequest, current_user: dict = Depends(front_desk)) -> EarnResult:
    """Credit points for money spent.

    Points are ``floor(amount * rate * tier multiplier)``.  Each job card
    can be credited once (409 on a second attempt).
    """
    try:
        result = await LoyaltyService.earn(
            customer_id,
            body.amount,
            current_user["user_id"],
            job_card_id=body.job_card_id,
            description=body.description,
        )
    except ValueError as e:
        raise http_error(e) from e
    return EarnResult(**result)


@router.post("/customers/{customer_id}/bonus", response_model=EarnResult)
async def bonus_points(customer_id: int, body: BonusRequest, current_user: dict = Depends(managers)) -> EarnResult:
    try:
        result = await LoyaltyService.bonus(customer_id, body.points, current_user["user_id"], body.description)
    except ValueError as e:
        raise http_error(e) from e
    return EarnResult(**result)


@router.post("/customers/{customer_id}/redeem", response_model=RedeemResult, status_code=status.HTTP_201_CREATED)
async def redeem_reward(
    customer_id: int,
    body: RedeemRequest,
    current_user: dict = Depends(front_desk),
) -> RedeemResult:
    """Spend points on a reward.  Fails with 400 if the balance is too low."""
    try:
        result = await LoyaltyService.redeem(customer_id, body.reward_id, current_user["user_id"])
    except ValueError as e:
        raise http_error(e) from e
    return RedeemResult(**result)


# ---------------------------------------------------------------------------
# Rewards
# ---------------------------------------------------------------------------

@router.get("/rewards", response_model=List[RewardRead])
async def list_rewards(active_only: bool = False, current_user: dict = Depends(front_desk)) -> List[RewardRead]:
    return await LoyaltyService.list_rewards(active_only=active_only)


@router.post("/rewards", response_model=RewardRead, status_code=status.HTTP_201_CREATED)
async def create_reward(body: RewardCreate, current_user: dict = Depends(managers)) -> RewardRead:
    return await LoyaltyService.create_reward(body, current_user["user_id"])


@router.get("/rewards/{reward_id}", response_model=RewardRead)
async def get_reward(reward_id: int, current_user: dict = Depends(front_desk)) -> RewardRead:
    try:
        return await LoyaltyService.get_reward(reward_id)
    except ValueError as e:
        raise http_error(e) from e


@router.patch("/rewards/{reward_id}", response_model=RewardRead)
async def update_reward(reward_id: int, body: RewardUpdate, current_user: dict = Depends(managers)) -> RewardRead:
    updates = {
        k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None or k in ("stock", "description")
    }
    try:
        return await LoyaltyService.update_reward(reward_id, updates, current_user["user_id"])
    except ValueError as e:
        raise http_error(e) from e


@router.delete("/rewards/{reward_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reward(reward_id: int, current_user: dict = Depends(managers)) -> None:
    try:
        await LoyaltyService.delete_reward(reward_id, current_user["user_id"])
    except ValueError as e:
        raise http_error(e) from e


# ---------------------------------------------------------------------------
# Redemptions and program overview
# ---------------------------------------------------------------------------

@router.get("/redemptions", response_model=List[RedemptionRead])
async def list_redemptions(
    status_filter: Optional[RedemptionStatus] = Query(None, alias="status"),
    customer_id: Optional[int] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(front_desk),
) -> List[RedemptionRead]:
    return await LoyaltyService.list_redemptions(
        status=status_filter.value if status_filter else None,
        customer_id=customer_id,
        limit=limit,
        offset=offset,
    )


@router.patch("/redemptions/{redemption_id}/status", response_model=RedemptionRead)
async def update_redemption_status(
    redemption_id: int,
    body: RedemptionStatusUpdate,
    current_user: dict = Depends(managers),
) -> RedemptionRead:
    """Fulfil or cancel a pending redemption.  Cancelling refunds the points."""
    try:
        return await LoyaltyService.update_redemption_status(redemption_id, body.status, current_user["user_id"])
    except ValueError as e:
        raise http_error(e) from e


@router.get("/tiers", response_model=List[TierInfo])
async def list_tiers(current_user: dict = Depends(front_desk)) -> List[TierInfo]:
    return LoyaltyService.tiers()


@router.get("/stats", response_model=LoyaltyStats)
async def loyalty_stats(current_user: dict = Depends(front_desk)) -> LoyaltyStats:
    return LoyaltyStats(**await LoyaltyService.stats())
