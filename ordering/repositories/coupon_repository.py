"""
Coupon Repository - Data Access Layer
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import desc, func, or_, update

from ordering.models.coupon import Coupon, UserCoupon
from ordering.models.user import User


class CouponRepository:
    """Repository for Coupon and redemption persistence"""

    def __init__(self, db: Session):
        self.db = db

    def get_all(self, active_only: bool = False, valid_at: Optional[datetime] = None) -> List[Coupon]:
        """
        Get coupons, newest first

        Args:
            active_only: Skip deactivated coupons
            valid_at: Skip coupons that expired before this moment
        """
        query = self.db.query(Coupon)
        if active_only:
            query = query.filter(Coupon.is_active.is_(True))
        if valid_at is not None:
            query = query.filter(or_(Coupon.valid_until.is_(None), Coupon.valid_until >= valid_at))
        return query.order_by(desc(Coupon.created_at), desc(Coupon.id)).all()

    def get_by_id(self, coupon_id: int) -> Optional[Coupon]:
        return self.db.query(Coupon).filter(Coupon.id == coupon_id).first()

    def get_by_code(self, code: str) -> Optional[Coupon]:
        return self.db.query(Coupon).filter(Coupon.code == code).first()

    def get_active_by_code(self, code: str) -> Optional[Coupon]:
        return self.db.query(Coupon).filter(
            Coupon.code == code,
            Coupon.is_active.is_(True)
        ).first()

    def add(self, coupon_data: dict) -> Coupon:
        coupon = Coupon(**coupon_data)
        self.db.add(coupon)
        self.db.flush()
        return coupon

    def update(self, coupon: Coupon, values: dict) -> Coupon:
        """Update only the provided fields"""
        for field, value in values.items():
            setattr(coupon, field, value)
        self.db.flush()
        return coupon

    def count_user_redemptions(self, coupon_id: int, user_id: int) -> int:
        return self.db.query(func.count(UserCoupon.id)).filter(
            UserCoupon.coupon_id == coupon_id,
            UserCoupon.user_id == user_id
        ).scalar()

    def increment_usage(self, coupon_id: int) -> bool:
        """
        Increment usage_count if the coupon is active and under its limit

        Check and increment are one statement, so two concurrent redemptions
        can never both pass a limit that only has room for one. The row stays
        locked until the caller's transaction ends.

        Returns:
            True if the counter was incremented
        """
        result = self.db.execute(
            update(Coupon)
            .where(
                Coupon.id == coupon_id,
                Coupon.is_active.is_(True),
                or_(Coupon.usage_limit.is_(None), Coupon.usage_count < Coupon.usage_limit),
            )
            .values(usage_count=Coupon.usage_count + 1, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def add_redemption(self, coupon_id: int, user_id: int, order_id: int) -> UserCoupon:
        redemption = UserCoupon(coupon_id=coupon_id, user_id=user_id, order_id=order_id)
        self.db.add(redemption)
        self.db.flush()
        return redemption

    def get_redemptions(self, coupon_id: int) -> List[tuple]:
        """Redemptions joined with the redeeming user, newest first"""
        return self.db.query(UserCoupon, User).outerjoin(
            User, UserCoupon.user_id == User.id
        ).filter(
            UserCoupon.coupon_id == coupon_id
        ).order_by(desc(UserCoupon.used_at), desc(UserCoupon.id)).all()
