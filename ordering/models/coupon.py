"""
SQLAlchemy Coupon and UserCoupon models
"""
from sqlalchemy import Boolean, Column, Integer, String, Numeric, DateTime, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ordering.database import Base


class Coupon(Base):
    """Coupon database model. Deactivated, never deleted."""

    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    code = Column(String(64), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=False)
    discount_type = Column(String(16), nullable=False, default='percentage')
    discount_value = Column(Numeric(10, 2), nullable=False)
    min_order_value = Column(Numeric(10, 2), nullable=False, default=0)
    usage_limit = Column(Integer, nullable=True)  # NULL = unlimited
    usage_count = Column(Integer, nullable=False, default=0)
    usage_per_user = Column(Integer, nullable=False, default=1)
    valid_from = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    valid_until = Column(DateTime(timezone=True), nullable=True)  # NULL = never expires
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    redemptions = relationship("UserCoupon", back_populates="coupon")

    # Constraints
    __table_args__ = (
        CheckConstraint("discount_type IN ('percentage', 'fixed')", name='check_discount_type_valid'),
        CheckConstraint('usage_limit IS NULL OR usage_count <= usage_limit', name='check_usage_within_limit'),
        CheckConstraint('usage_per_user > 0', name='check_usage_per_user_positive'),
    )

    def __repr__(self):
        return f"<Coupon(id={self.id}, code='{self.code}', usage={self.usage_count}/{self.usage_limit})>"


class UserCoupon(Base):
    """One row per successful coupon redemption"""

    __tablename__ = "user_coupons"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    coupon_id = Column(Integer, ForeignKey("coupons.id"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True, unique=True)
    used_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    coupon = relationship("Coupon", back_populates="redemptions")
    user = relationship("User", primaryjoin="foreign(UserCoupon.user_id) == User.id", viewonly=True)

    def __repr__(self):
        return f"<UserCoupon(user_id={self.user_id}, coupon_id={self.coupon_id}, order_id={self.order_id})>"
