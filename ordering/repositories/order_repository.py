"""
Order Repository - Data Access Layer

Writes only flush; the calling service owns the transaction.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import desc, insert, select, update
from sqlalchemy.exc import IntegrityError

from ordering.models.order import Order, OrderItem, OrderSequence


class OrderRepository:
    """Repository for Order persistence"""

    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(Order).options(
            selectinload(Order.items),
            selectinload(Order.user),
        )

    def get_all(self, skip: int = 0, limit: int = 100) -> List[Order]:
        """Get all orders, newest first"""
        return self._query().order_by(
            desc(Order.created_at), desc(Order.id)
        ).offset(skip).limit(limit).all()

    def get_by_id(self, order_id: int) -> Optional[Order]:
        """Get order by ID"""
        return self._query().filter(Order.id == order_id).first()

    def get_by_user(self, user_id: int) -> List[Order]:
        """Get orders placed by a user"""
        return self._query().filter(
            Order.user_id == user_id
        ).order_by(desc(Order.created_at), desc(Order.id)).all()

    def get_by_payment_status(self, *statuses: str) -> List[Order]:
        """Get orders whose payment status is one of ``statuses``"""
        return self._query().filter(
            Order.payment_status.in_(statuses)
        ).order_by(desc(Order.created_at), desc(Order.id)).all()

    def get_confirmed_payments(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        payment_method: Optional[str] = None,
    ) -> List[Order]:
        """Confirmed payments, most recently confirmed first"""
        query = self.db.query(Order).options(
            selectinload(Order.user),
            selectinload(Order.confirmer),
        ).filter(Order.payment_status == "confirmed")

        if start_date:
            query = query.filter(Order.confirmed_at >= start_date)
        if end_date:
            query = query.filter(Order.confirmed_at <= end_date)
        if payment_method:
            query = query.filter(Order.payment_method == payment_method)

        return query.order_by(desc(Order.confirmed_at), desc(Order.id)).all()

    def add(self, order_data: dict, items: List[dict]) -> Order:
        """
        Stage a new order with its items

        Args:
            order_data: Dictionary with order fields
            items: Dictionaries with order item fields

        Returns:
            Order with its primary key assigned
        """
        order = Order(**order_data)
        order.items = [OrderItem(**item) for item in items]
        self.db.add(order)
        self.db.flush()
        return order

    def update_fields(self, order_id: int, guard: dict, values: dict) -> bool:
        """
        Conditionally update an order

        Only rows whose columns equal every value in ``guard`` are touched,
        so a concurrent change between read and write makes this a no-op.

        Returns:
            True if the row was updated
        """
        statement = update(Order).where(Order.id == order_id)
        for column, expected in guard.items():
            statement = statement.where(getattr(Order, column) == expected)
        result = self.db.execute(
            statement.values(**values).execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def refresh(self, order: Order) -> Order:
        self.db.refresh(order)
        return order


class OrderSequenceRepository:
    """Per-period counter backing order numbers"""

    def __init__(self, db: Session):
        self.db = db

    def _increment(self, period: int) -> Optional[int]:
        result = self.db.execute(
            update(OrderSequence)
            .where(OrderSequence.period == period)
            .values(last_value=OrderSequence.last_value + 1)
            .returning(OrderSequence.last_value)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one_or_none()

    def next_value(self, period: int) -> int:
        """
        Atomically increment and return the counter for ``period``

        The UPDATE locks the period row until the surrounding transaction
        ends, so concurrent callers are serialized. The first caller of a
        period inserts the row; a concurrent insert of the same period
        falls back to the increment.
        """
        value = self._increment(period)
        if value is not None:
            return value

        try:
            with self.db.begin_nested():
                self.db.execute(insert(OrderSequence).values(period=period, last_value=1))
            return 1
        except IntegrityError:
            value = self._increment(period)
            if value is None:
                raise
            return value

    def current_value(self, period: int) -> int:
        value = self.db.execute(
            select(OrderSequence.last_value).where(OrderSequence.period == period)
        ).scalar_one_or_none()
        return value or 0
