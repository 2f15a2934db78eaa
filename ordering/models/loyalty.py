"""
SQLAlchemy LoyaltyAccount model
"""
from sqlalchemy import Column, Integer, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ordering.database import Base


class LoyaltyAccount(Base):
    """Loyalty point balance, one per user"""

    __tablename__ = "loyalty_points"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, unique=True, index=True)
    balance = Column(Integer, nullable=False, default=0)
    total_earned = Column(Integer, nullable=False, default=0)
    total_used = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", primaryjoin="foreign(LoyaltyAccount.user_id) == User.id", viewonly=True)

    __table_args__ = (
        CheckConstraint('balance >= 0', name='check_balance_non_negative'),
        CheckConstraint('balance = total_earned - total_used', name='check_balance_consistent'),
    )

    def __repr__(self):
        return f"<LoyaltyAccount(user_id={self.user_id}, balance={self.balance})>"
