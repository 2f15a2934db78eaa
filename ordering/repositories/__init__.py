"""
Repositories package
"""
from ordering.repositories.order_repository import OrderRepository, OrderSequenceRepository
from ordering.repositories.coupon_repository import CouponRepository
from ordering.repositories.loyalty_repository import LoyaltyRepository

__all__ = [
    "OrderRepository",
    "OrderSequenceRepository",
    "CouponRepository",
    "LoyaltyRepository",
]
