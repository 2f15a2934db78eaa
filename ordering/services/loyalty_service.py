"""
Loyalty Service - point balances
"""
import logging
from decimal import Decimal
from typing import List
from sqlalchemy.orm import Session

from ordering.auth import Actor, require_admin
from ordering.database import transaction
from ordering.exceptions import InsufficientPoints, ValidationError
from ordering.repositories.loyalty_repository import LoyaltyRepository
from ordering.schemas.loyalty import (
    LoyaltyAccountListItem,
    LoyaltyAccountResponse,
    PointsAdjustResponse,
    PointsRedeemResponse,
)

logger = logging.getLogger(__name__)

# Monetary value of one point when redeemed: 100 points = R$ 1.00
POINT_VALUE = Decimal("0.01")

DEFAULT_ADJUST_REASON = "Manual bonus"


def points_to_currency(points: int) -> Decimal:
    return (POINT_VALUE * points).quantize(POINT_VALUE)


class LoyaltyService:
    """Service layer for loyalty points"""

    def __init__(self, db: Session):
        self.db = db
        self.repository = LoyaltyRepository(db)

    def credit(self, user_id: int, points: int) -> None:
        """Add points within the caller's transaction"""
        if points < 0:
            raise ValidationError("Points to credit cannot be negative")
        self.repository.credit(user_id, points)

    def debit(self, user_id: int, points: int) -> None:
        """
        Remove points within the caller's transaction

        Raises:
            InsufficientPoints: If the balance does not cover ``points``
        """
        if points <= 0:
            raise ValidationError("Invalid number of points")
        if not self.repository.debit(user_id, points):
            raise InsufficientPoints()

    def get_account(self, actor: Actor) -> LoyaltyAccountResponse:
        """Own balance; the account is created on first access"""
        with transaction(self.db):
            self.repository.ensure_account(actor.user_id)
        return LoyaltyAccountResponse.model_validate(self.repository.get_by_user(actor.user_id))

    def redeem(self, actor: Actor, points: int) -> PointsRedeemResponse:
        """Convert points into a discount value"""
        with transaction(self.db):
            self.debit(actor.user_id, points)

        account = self.repository.get_by_user(actor.user_id)
        return PointsRedeemResponse(
            points_used=points,
            discount_value=points_to_currency(points),
            new_balance=account.balance,
        )

    def admin_adjust(self, actor: Actor, user_id: int, points: int, reason: str = None) -> PointsAdjustResponse:
        """Privileged credit with an audit reason"""
        require_admin(actor, "Only administrators can add points")
        if points <= 0:
            raise ValidationError("Invalid number of points")

        reason = reason or DEFAULT_ADJUST_REASON
        with transaction(self.db):
            self.repository.credit(user_id, points)

        logger.info("Admin %s credited %s points to user %s: %s", actor.user_id, points, user_id, reason)
        account = self.repository.get_by_user(user_id)
        return PointsAdjustResponse(
            message=f"{points} points added successfully",
            reason=reason,
            new_balance=account.balance,
        )

    def list_accounts(self, actor: Actor) -> List[LoyaltyAccountListItem]:
        require_admin(actor, "Only administrators can view all loyalty balances")
        return [
            LoyaltyAccountListItem(
                user_id=account.user_id,
                balance=account.balance,
                total_earned=account.total_earned,
                total_used=account.total_used,
                user_name=account.user.name if account.user else None,
                user_email=account.user.email if account.user else None,
            )
            for account in self.repository.get_all()
        ]
