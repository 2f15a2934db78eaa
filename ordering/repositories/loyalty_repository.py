"""
Loyalty Repository - Data Access Layer
"""
from typing import List, Optional
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import desc, func, insert, update
from sqlalchemy.exc import IntegrityError

from ordering.models.loyalty import LoyaltyAccount


class LoyaltyRepository:
    """Repository for loyalty balances. Every write is one guarded statement."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_user(self, user_id: int) -> Optional[LoyaltyAccount]:
        return self.db.query(LoyaltyAccount).filter(LoyaltyAccount.user_id == user_id).first()

    def get_all(self) -> List[LoyaltyAccount]:
        return self.db.query(LoyaltyAccount).options(
            selectinload(LoyaltyAccount.user)
        ).order_by(desc(LoyaltyAccount.balance), LoyaltyAccount.user_id).all()

    def ensure_account(self, user_id: int) -> None:
        """Create a zero account for ``user_id`` unless one exists"""
        if self.get_by_user(user_id) is not None:
            return
        try:
            with self.db.begin_nested():
                self.db.execute(insert(LoyaltyAccount).values(
                    user_id=user_id, balance=0, total_earned=0, total_used=0
                ))
        except IntegrityError:
            # Created concurrently
            pass

    def _add(self, user_id: int, points: int) -> bool:
        result = self.db.execute(
            update(LoyaltyAccount)
            .where(LoyaltyAccount.user_id == user_id)
            .values(
                balance=LoyaltyAccount.balance + points,
                total_earned=LoyaltyAccount.total_earned + points,
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def credit(self, user_id: int, points: int) -> None:
        """Add ``points`` to balance and total_earned, creating the account if absent"""
        if self._add(user_id, points):
            return
        try:
            with self.db.begin_nested():
                self.db.execute(insert(LoyaltyAccount).values(
                    user_id=user_id, balance=points, total_earned=points, total_used=0
                ))
        except IntegrityError:
            if not self._add(user_id, points):
                raise

    def debit(self, user_id: int, points: int) -> bool:
        """
        Move ``points`` from balance to total_used if the balance covers it

        Returns:
            False if the account is missing or the balance is too low
        """
        result = self.db.execute(
            update(LoyaltyAccount)
            .where(
                LoyaltyAccount.user_id == user_id,
                LoyaltyAccount.balance >= points,
            )
            .values(
                balance=LoyaltyAccount.balance - points,
                total_used=LoyaltyAccount.total_used + points,
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
