"""
Services package
"""
from ordering.services.order_service import OrderService
from ordering.services.payment_service import PaymentService
from ordering.services.coupon_service import CouponService
from ordering.services.loyalty_service import LoyaltyService
from ordering.services.menu_client import MenuServiceClient
from ordering.services.pix_provider import HttpPixCodeProvider, PixCodeProvider

__all__ = [
    "OrderService",
    "PaymentService",
    "CouponService",
    "LoyaltyService",
    "MenuServiceClient",
    "HttpPixCodeProvider",
    "PixCodeProvider",
]
