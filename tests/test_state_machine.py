"""
Tests for the order and payment transition tables
"""
import pytest

from ordering.exceptions import InvalidStatusTransition, ValidationError
from ordering.state_machine import (
    CANCELLABLE_STATUSES,
    ORDER_TRANSITIONS,
    OrderStatus,
    PaymentStatus,
    ensure_order_transition,
    ensure_payment_transition,
    initial_payment_status,
)

HAPPY_PATH = ["pending", "confirmed", "preparing", "ready", "out_for_delivery", "delivered"]


@pytest.mark.parametrize("current,target", list(zip(HAPPY_PATH, HAPPY_PATH[1:])))
def test_forward_steps_are_allowed(current, target):
    assert ensure_order_transition(current, target) is OrderStatus(target)


@pytest.mark.parametrize("current", ["pending", "confirmed"])
def test_cancel_before_preparation(current):
    assert ensure_order_transition(current, "cancelled") is OrderStatus.CANCELLED


@pytest.mark.parametrize("current,target", [
    ("pending", "preparing"),
    ("pending", "delivered"),
    ("preparing", "cancelled"),
    ("ready", "pending"),
    ("out_for_delivery", "cancelled"),
    ("delivered", "pending"),
    ("cancelled", "confirmed"),
    ("confirmed", "confirmed"),
])
def test_other_moves_are_rejected(current, target):
    with pytest.raises(InvalidStatusTransition) as exc_info:
        ensure_order_transition(current, target)
    assert exc_info.value.current == current
    assert exc_info.value.target == target


def test_terminal_statuses_have_no_exits():
    assert ORDER_TRANSITIONS[OrderStatus.DELIVERED] == frozenset()
    assert ORDER_TRANSITIONS[OrderStatus.CANCELLED] == frozenset()


def test_cancellable_statuses():
    assert CANCELLABLE_STATUSES == {OrderStatus.PENDING, OrderStatus.CONFIRMED}


def test_unknown_status():
    with pytest.raises(ValidationError):
        ensure_order_transition("pending", "shipped")


def test_payment_moves_forward_only():
    assert ensure_payment_transition("pending", "paid") is PaymentStatus.PAID
    assert ensure_payment_transition("paid", "confirmed") is PaymentStatus.CONFIRMED
    with pytest.raises(InvalidStatusTransition):
        ensure_payment_transition("confirmed", "paid")
    with pytest.raises(ValidationError):
        ensure_payment_transition("pending", "refunded")


@pytest.mark.parametrize("method,expected", [
    ("pix", PaymentStatus.PENDING),
    ("cash", PaymentStatus.PAID),
    ("card", PaymentStatus.PAID),
])
def test_initial_payment_status(method, expected):
    assert initial_payment_status(method) is expected
