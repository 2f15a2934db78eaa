"""
Order and payment status lifecycles

Transition tables live here so every status change is validated in one
place instead of at each call site.
"""
from enum import Enum
from typing import Dict, FrozenSet

from ordering.exceptions import InvalidStatusTransition, ValidationError


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    CONFIRMED = "confirmed"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    PIX = "pix"


class DeliveryType(str, Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"


ORDER_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY}),
    OrderStatus.READY: frozenset({OrderStatus.OUT_FOR_DELIVERY}),
    OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# Forward moves only. Rejection resets to PENDING through reject_payment().
PAYMENT_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.PAID, PaymentStatus.CONFIRMED}),
    PaymentStatus.PAID: frozenset({PaymentStatus.CONFIRMED}),
    PaymentStatus.CONFIRMED: frozenset(),
}

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})
CANCELLABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})


def parse_order_status(value: str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid order status: {value}")


def parse_payment_status(value: str) -> PaymentStatus:
    try:
        return PaymentStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid payment status: {value}")


def ensure_order_transition(current: str, target: str) -> OrderStatus:
    """Return the target status or raise InvalidStatusTransition"""
    target_status = parse_order_status(target)
    if target_status not in ORDER_TRANSITIONS[OrderStatus(current)]:
        raise InvalidStatusTransition(current, target_status.value)
    return target_status


def ensure_payment_transition(current: str, target: str) -> PaymentStatus:
    target_status = parse_payment_status(target)
    if target_status not in PAYMENT_TRANSITIONS[PaymentStatus(current)]:
        raise InvalidStatusTransition(current, target_status.value)
    return target_status


def initial_payment_status(method: str) -> PaymentStatus:
    """Pix waits for the transfer; cash and card are settled on hand-off"""
    if PaymentMethod(method) is PaymentMethod.PIX:
        return PaymentStatus.PENDING
    return PaymentStatus.PAID
