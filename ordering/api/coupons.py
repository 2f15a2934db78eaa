"""
Coupon API endpoints
"""
from fastapi import APIRouter, Depends, Query, status
from typing import List

from ordering.api.deps import get_current_actor, get_coupon_service
from ordering.auth import Actor
from ordering.services.coupon_service import CouponService
from ordering.schemas.coupon import (
    CouponCreate,
    CouponResponse,
    CouponStatistics,
    CouponUpdate,
    CouponValidateRequest,
    CouponValidationResult,
)

router = APIRouter(prefix="/coupons", tags=["coupons"])


@router.post("", response_model=CouponResponse, status_code=status.HTTP_201_CREATED, summary="Create coupon")
def create_coupon(
    data: CouponCreate,
    actor: Actor = Depends(get_current_actor),
    service: CouponService = Depends(get_coupon_service)
):
    """
    Create a new coupon (admin only)

    - **code**: Unique code, stored upper-case
    - **discount_type**: percentage or fixed
    - **usage_limit**: Total redemptions allowed (empty for unlimited)
    """
    return service.create_coupon(actor, data)


@router.get("", response_model=List[CouponResponse], summary="List coupons")
def get_coupons(
    active_only: bool = Query(False, description="Admins: only active coupons"),
    actor: Actor = Depends(get_current_actor),
    service: CouponService = Depends(get_coupon_service)
):
    """
    Customers only see active, unexpired coupons
    """
    return service.list_coupons(actor, active_only=active_only)


@router.post("/validate", response_model=CouponValidationResult, summary="Validate coupon")
def validate_coupon(
    data: CouponValidateRequest,
    actor: Actor = Depends(get_current_actor),
    service: CouponService = Depends(get_coupon_service)
):
    """
    Check whether a coupon applies and compute its discount

    - **code**: Coupon code
    - **order_value**: Cart subtotal (optional)
    """
    return service.check(actor, data.code, data.order_value)


@router.get("/{coupon_id}", response_model=CouponResponse, summary="Get coupon by ID")
def get_coupon(
    coupon_id: int,
    actor: Actor = Depends(get_current_actor),
    service: CouponService = Depends(get_coupon_service)
):
    return service.get_coupon(coupon_id)


@router.get("/{coupon_id}/statistics", response_model=CouponStatistics, summary="Coupon statistics")
def get_coupon_statistics(
    coupon_id: int,
    actor: Actor = Depends(get_current_actor),
    service: CouponService = Depends(get_coupon_service)
):
    return service.statistics(actor, coupon_id)


@router.put("/{coupon_id}", response_model=CouponResponse, summary="Update coupon")
def update_coupon(
    coupon_id: int,
    data: CouponUpdate,
    actor: Actor = Depends(get_current_actor),
    service: CouponService = Depends(get_coupon_service)
):
    return service.update_coupon(actor, coupon_id, data)


@router.delete("/{coupon_id}", response_model=CouponResponse, summary="Deactivate coupon")
def deactivate_coupon(
    coupon_id: int,
    actor: Actor = Depends(get_current_actor),
    service: CouponService = Depends(get_coupon_service)
):
    """
    Coupons are deactivated, never removed
    """
    return service.deactivate_coupon(actor, coupon_id)
