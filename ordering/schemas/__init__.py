"""
Schemas package
"""
from ordering.schemas.order import (
    DeliveryAddress,
    OrderItemCreate,
    OrderCreate,
    OrderStatusUpdate,
    OrderCreatedResponse,
    OrderResponse,
    OrderActionResponse,
    PaymentConfirm,
    PaymentReject,
    PaymentConfirmationRecord,
)
from ordering.schemas.coupon import (
    CouponCreate,
    CouponUpdate,
    CouponResponse,
    CouponValidateRequest,
    CouponValidationResult,
    CouponStatistics,
)
from ordering.schemas.loyalty import (
    LoyaltyAccountResponse,
    LoyaltyAccountListItem,
    PointsRedeemRequest,
    PointsRedeemResponse,
    PointsAdjustRequest,
    PointsAdjustResponse,
)

__all__ = [
    "DeliveryAddress",
    "OrderItemCreate",
    "OrderCreate",
    "OrderStatusUpdate",
    "OrderCreatedResponse",
    "OrderResponse",
    "OrderActionResponse",
    "PaymentConfirm",
    "PaymentReject",
    "PaymentConfirmationRecord",
    "CouponCreate",
    "CouponUpdate",
    "CouponResponse",
    "CouponValidateRequest",
    "CouponValidationResult",
    "CouponStatistics",
    "LoyaltyAccountResponse",
    "LoyaltyAccountListItem",
    "PointsRedeemRequest",
    "PointsRedeemResponse",
    "PointsAdjustRequest",
    "PointsAdjustResponse",
]
