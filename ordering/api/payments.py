"""
Payment confirmation API endpoints
"""
from datetime import datetime
from fastapi import APIRouter, Body, Depends, Query
from typing import List, Optional

from ordering.api.deps import get_current_actor, get_payment_service
from ordering.auth import Actor
from ordering.services.payment_service import PaymentService
from ordering.schemas.order import (
    OrderActionResponse,
    OrderResponse,
    PaymentConfirm,
    PaymentConfirmationRecord,
    PaymentReject,
)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/confirm/{order_id}", response_model=OrderActionResponse, summary="Confirm payment")
def confirm_payment(
    order_id: int,
    data: Optional[PaymentConfirm] = Body(None),
    actor: Actor = Depends(get_current_actor),
    service: PaymentService = Depends(get_payment_service)
):
    """
    Manually confirm the payment of an order (admin only)

    - **notes**: Optional confirmation notes
    """
    return service.confirm_payment(actor, order_id, data.notes if data else None)


@router.patch("/reject/{order_id}", response_model=OrderActionResponse, summary="Reject payment")
def reject_payment(
    order_id: int,
    data: PaymentReject,
    actor: Actor = Depends(get_current_actor),
    service: PaymentService = Depends(get_payment_service)
):
    """
    Reject the payment and cancel the order (admin only)

    - **reason**: Rejection reason (required)
    """
    return service.reject_payment(actor, order_id, data.reason)


@router.get("/pending", response_model=List[OrderResponse], summary="Pending payments")
def get_pending_payments(
    actor: Actor = Depends(get_current_actor),
    service: PaymentService = Depends(get_payment_service)
):
    return service.list_pending(actor)


@router.get("/history", response_model=List[PaymentConfirmationRecord], summary="Confirmation history")
def get_payment_history(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    payment_method: Optional[str] = Query(None, description="cash, card or pix"),
    actor: Actor = Depends(get_current_actor),
    service: PaymentService = Depends(get_payment_service)
):
    return service.confirmation_history(actor, start_date, end_date, payment_method)
