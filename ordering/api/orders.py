"""
Order API endpoints
"""
from fastapi import APIRouter, Depends, status
from typing import List

from ordering.api.deps import get_current_actor, get_order_service
from ordering.auth import Actor
from ordering.services.order_service import OrderService
from ordering.schemas.order import (
    OrderActionResponse,
    OrderCreate,
    OrderCreatedResponse,
    OrderResponse,
    OrderStatusUpdate,
)

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderCreatedResponse, status_code=status.HTTP_201_CREATED, summary="Create order")
async def create_order(
    order_data: OrderCreate,
    actor: Actor = Depends(get_current_actor),
    service: OrderService = Depends(get_order_service)
):
    """
    Create a new order

    Process:
    1. Resolve every plate against the Menu Service
    2. Apply delivery fee and coupon discount
    3. Allocate the order number and, for Pix, the payment code
    4. Save order, coupon redemption and loyalty points atomically
    5. Notify the restaurant

    - **items**: Plates and quantities (required, non-empty)
    - **delivery_type**: delivery or pickup (default: delivery)
    - **delivery_address**: Required for delivery
    - **coupon_code**: Optional coupon
    - **payment_method**: cash, card or pix (default: cash)
    """
    return await service.create_order(actor, order_data)


@router.get("", response_model=List[OrderResponse], summary="List orders")
def get_orders(
    actor: Actor = Depends(get_current_actor),
    service: OrderService = Depends(get_order_service)
):
    """
    Customers get their own orders, administrators get every order
    """
    return service.list_orders(actor)


@router.get("/payment-status/{payment_status}", response_model=List[OrderResponse],
            summary="List orders by payment status")
def get_orders_by_payment_status(
    payment_status: str,
    actor: Actor = Depends(get_current_actor),
    service: OrderService = Depends(get_order_service)
):
    """
    Admin only

    - **payment_status**: pending, paid or confirmed
    """
    return service.list_by_payment_status(actor, payment_status)


@router.get("/{order_id}", response_model=OrderResponse, summary="Get order by ID")
def get_order(
    order_id: int,
    actor: Actor = Depends(get_current_actor),
    service: OrderService = Depends(get_order_service)
):
    """
    Retrieve a specific order by ID

    - **order_id**: Order ID
    """
    return service.get_order(actor, order_id)


@router.patch("/{order_id}/status", response_model=OrderActionResponse, summary="Update order status")
def update_order_status(
    order_id: int,
    status_data: OrderStatusUpdate,
    actor: Actor = Depends(get_current_actor),
    service: OrderService = Depends(get_order_service)
):
    """
    Update order status (admin only)

    - **order_id**: Order ID
    - **status**: confirmed, preparing, ready, out_for_delivery, delivered or cancelled
    """
    return service.update_order_status(actor, order_id, status_data.status)


@router.delete("/{order_id}", response_model=OrderActionResponse, summary="Cancel order")
def cancel_order(
    order_id: int,
    actor: Actor = Depends(get_current_actor),
    service: OrderService = Depends(get_order_service)
):
    """
    Cancel a pending or confirmed order
    """
    return service.cancel_order(actor, order_id)
