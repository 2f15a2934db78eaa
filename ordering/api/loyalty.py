"""
Loyalty points API endpoints
"""
from fastapi import APIRouter, Depends
from typing import List

from ordering.api.deps import get_current_actor, get_loyalty_service
from ordering.auth import Actor
from ordering.services.loyalty_service import LoyaltyService
from ordering.schemas.loyalty import (
    LoyaltyAccountListItem,
    LoyaltyAccountResponse,
    PointsAdjustRequest,
    PointsAdjustResponse,
    PointsRedeemRequest,
    PointsRedeemResponse,
)

router = APIRouter(prefix="/loyalty", tags=["loyalty"])


@router.get("", response_model=LoyaltyAccountResponse, summary="Own points balance")
def get_balance(
    actor: Actor = Depends(get_current_actor),
    service: LoyaltyService = Depends(get_loyalty_service)
):
    return service.get_account(actor)


@router.get("/all", response_model=List[LoyaltyAccountListItem], summary="All balances")
def get_all_balances(
    actor: Actor = Depends(get_current_actor),
    service: LoyaltyService = Depends(get_loyalty_service)
):
    """
    Every account, highest balance first (admin only)
    """
    return service.list_accounts(actor)


@router.post("/use", response_model=PointsRedeemResponse, summary="Redeem points")
def use_points(
    data: PointsRedeemRequest,
    actor: Actor = Depends(get_current_actor),
    service: LoyaltyService = Depends(get_loyalty_service)
):
    """
    Convert points into a discount value (100 points = R$ 1.00)
    """
    return service.redeem(actor, data.points)


@router.post("/add", response_model=PointsAdjustResponse, summary="Add points")
def add_points(
    data: PointsAdjustRequest,
    actor: Actor = Depends(get_current_actor),
    service: LoyaltyService = Depends(get_loyalty_service)
):
    """
    Credit points to a user (admin only)

    - **reason**: Audit reason (default: Manual bonus)
    """
    return service.admin_adjust(actor, data.user_id, data.points, data.reason)
