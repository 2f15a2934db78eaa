"""
Coupon Service - validation, redemption and administration
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional
from sqlalchemy.orm import Session

from ordering.auth import Actor, require_admin
from ordering.database import transaction
from ordering.exceptions import (
    BusinessRuleViolation,
    CouponAlreadyExists,
    CouponExpired,
    CouponNotFound,
    CouponNotYetValid,
    CouponUsageLimitReached,
    CouponUserLimitReached,
    MinimumOrderValueNotMet,
    ValidationError,
)
from ordering.models.coupon import Coupon
from ordering.repositories.coupon_repository import CouponRepository
from ordering.schemas.coupon import (
    CouponCreate,
    CouponRedemptionRecord,
    CouponResponse,
    CouponStatistics,
    CouponSummary,
    CouponUpdate,
    CouponValidationResult,
)
from ordering.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
DISCOUNT_TYPES = ("percentage", "fixed")


def normalize_code(code: str) -> str:
    return code.strip().upper()


def calculate_discount(coupon: Coupon, subtotal: Decimal) -> Decimal:
    """Percentage or fixed discount, never more than ``subtotal``"""
    if coupon.discount_type == "percentage":
        discount = subtotal * Decimal(coupon.discount_value) / Decimal(100)
    else:
        discount = Decimal(coupon.discount_value)
    discount = discount.quantize(CENTS, rounding=ROUND_HALF_UP)
    return min(discount, subtotal)


@dataclass(frozen=True)
class CouponQuote:
    coupon: Coupon
    discount: Decimal


class CouponService:
    """Service layer for coupon business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repository = CouponRepository(db)

    # ------------------------------------------------------------ ledger

    def validate(self, code: str, user_id: int, order_subtotal: Optional[Decimal],
                 now: datetime = None) -> CouponQuote:
        """
        Read-only eligibility check

        Checks run in order: exists and active, started, not expired,
        minimum order value, global usage limit, per-user limit.

        Args:
            code: Coupon code, any case
            user_id: Redeeming user
            order_subtotal: Cart subtotal; None skips the minimum check
                and quotes a zero discount

        Returns:
            The coupon and the discount it grants

        Raises:
            CouponNotFound, CouponNotYetValid, CouponExpired,
            MinimumOrderValueNotMet, CouponUsageLimitReached,
            CouponUserLimitReached
        """
        now = now or utcnow()
        coupon = self.repository.get_active_by_code(normalize_code(code))
        if coupon is None:
            raise CouponNotFound()

        if as_utc(coupon.valid_from) > now:
            raise CouponNotYetValid()

        if coupon.valid_until is not None and as_utc(coupon.valid_until) < now:
            raise CouponExpired()

        if order_subtotal is not None and order_subtotal < Decimal(coupon.min_order_value):
            raise MinimumOrderValueNotMet(
                f"Minimum order value for this coupon is R$ {Decimal(coupon.min_order_value):.2f}"
            )

        if coupon.usage_limit is not None and coupon.usage_count >= coupon.usage_limit:
            raise CouponUsageLimitReached()

        if self.repository.count_user_redemptions(coupon.id, user_id) >= coupon.usage_per_user:
            raise CouponUserLimitReached()

        discount = calculate_discount(coupon, order_subtotal) if order_subtotal is not None else Decimal("0.00")
        return CouponQuote(coupon=coupon, discount=discount)

    def redeem(self, coupon: Coupon, user_id: int, order_id: int) -> None:
        """
        Record a redemption inside the caller's transaction

        The conditional increment locks the coupon row, so the per-user
        count taken afterwards cannot race another redemption of the same
        coupon.

        Raises:
            CouponUsageLimitReached: Limit was used up since validation
            CouponUserLimitReached: User redeemed it concurrently
        """
        if not self.repository.increment_usage(coupon.id):
            raise CouponUsageLimitReached()

        if self.repository.count_user_redemptions(coupon.id, user_id) >= coupon.usage_per_user:
            raise CouponUserLimitReached()

        self.repository.add_redemption(coupon.id, user_id, order_id)

    def check(self, actor: Actor, code: str, order_value: Optional[Decimal]) -> CouponValidationResult:
        """Public validation: validity and discount, or why the coupon does not apply"""
        if not code or not code.strip():
            raise ValidationError("Coupon code is required")

        try:
            quote = self.validate(code, actor.user_id, order_value)
        except CouponNotFound:
            raise
        except BusinessRuleViolation as e:
            return CouponValidationResult(valid=False, message=e.message, error=e.code)

        coupon = quote.coupon
        return CouponValidationResult(
            valid=True,
            discount=quote.discount,
            message="Coupon is valid",
            coupon=CouponSummary(
                code=coupon.code,
                description=coupon.description,
                discount_type=coupon.discount_type,
                discount_value=coupon.discount_value,
            ),
        )

    # ------------------------------------------------------------ admin

    def create_coupon(self, actor: Actor, data: CouponCreate) -> CouponResponse:
        require_admin(actor, "Only administrators can create coupons")

        if data.discount_type not in DISCOUNT_TYPES:
            raise ValidationError("Invalid discount type")
        if data.discount_type == "percentage" and data.discount_value > 100:
            raise ValidationError("Percentage discount cannot exceed 100")

        code = normalize_code(data.code)
        if self.repository.get_by_code(code) is not None:
            raise CouponAlreadyExists()

        values = data.model_dump(exclude={"code", "valid_from"})
        values["code"] = code
        values["valid_from"] = data.valid_from or utcnow()

        with transaction(self.db):
            coupon = self.repository.add(values)

        logger.info("Coupon %s created by admin %s", code, actor.user_id)
        return CouponResponse.model_validate(coupon)

    def update_coupon(self, actor: Actor, coupon_id: int, data: CouponUpdate) -> CouponResponse:
        require_admin(actor, "Only administrators can update coupons")

        coupon = self._get(coupon_id)
        values = data.model_dump(exclude_unset=True)

        if values.get("usage_limit") is not None and values["usage_limit"] < coupon.usage_count:
            raise ValidationError("Usage limit cannot be lower than the current usage count")
        if (coupon.discount_type == "percentage" and values.get("discount_value") is not None
                and values["discount_value"] > 100):
            raise ValidationError("Percentage discount cannot exceed 100")

        with transaction(self.db):
            self.repository.update(coupon, values)

        logger.info("Coupon %s updated by admin %s: %s", coupon.code, actor.user_id, sorted(values))
        return CouponResponse.model_validate(coupon)

    def deactivate_coupon(self, actor: Actor, coupon_id: int) -> CouponResponse:
        """Soft delete; redemption history stays intact"""
        require_admin(actor, "Only administrators can delete coupons")

        coupon = self._get(coupon_id)
        with transaction(self.db):
            self.repository.update(coupon, {"is_active": False})

        logger.info("Coupon %s deactivated by admin %s", coupon.code, actor.user_id)
        return CouponResponse.model_validate(coupon)

    def list_coupons(self, actor: Actor, active_only: bool = False) -> List[CouponResponse]:
        if actor.is_admin:
            coupons = self.repository.get_all(active_only=active_only)
        else:
            coupons = self.repository.get_all(active_only=True, valid_at=utcnow())
        return [CouponResponse.model_validate(c) for c in coupons]

    def get_coupon(self, coupon_id: int) -> CouponResponse:
        return CouponResponse.model_validate(self._get(coupon_id))

    def statistics(self, actor: Actor, coupon_id: int) -> CouponStatistics:
        require_admin(actor, "Only administrators can view statistics")

        coupon = self._get(coupon_id)
        users = [
            CouponRedemptionRecord(
                name=user.name if user else None,
                email=user.email if user else None,
                order_id=redemption.order_id,
                used_at=redemption.used_at,
            )
            for redemption, user in self.repository.get_redemptions(coupon_id)
        ]
        return CouponStatistics(
            code=coupon.code,
            description=coupon.description,
            total_uses=coupon.usage_count,
            limit=coupon.usage_limit,
            users=users,
        )

    def _get(self, coupon_id: int) -> Coupon:
        coupon = self.repository.get_by_id(coupon_id)
        if coupon is None:
            raise CouponNotFound("Coupon not found")
        return coupon
