"""
Models package
"""
from ordering.models.user import User
from ordering.models.order import Order, OrderItem, OrderSequence
from ordering.models.coupon import Coupon, UserCoupon
from ordering.models.loyalty import LoyaltyAccount

__all__ = [
    "User",
    "Order",
    "OrderItem",
    "OrderSequence",
    "Coupon",
    "UserCoupon",
    "LoyaltyAccount",
]
