"""
Order number generation
"""
from datetime import datetime, timezone
from sqlalchemy.orm import Session

from ordering.config import settings
from ordering.repositories.order_repository import OrderSequenceRepository


def format_order_number(prefix: str, period: int, value: int) -> str:
    """ORD-2025-0001; widths past four digits grow instead of wrapping"""
    return f"{prefix}-{period}-{value:04d}"


class OrderNumberGenerator:
    """Allocates year-scoped, strictly increasing order numbers"""

    def __init__(self, db: Session, prefix: str = None):
        self.repository = OrderSequenceRepository(db)
        self.prefix = prefix or settings.ORDER_NUMBER_PREFIX

    def next_number(self, now: datetime = None) -> str:
        """
        Allocate the next order number for the current year

        The counter row stays locked until the surrounding transaction
        ends, so keep that transaction short. A rollback returns the number.
        """
        period = (now or datetime.now(timezone.utc)).year
        return format_order_number(self.prefix, period, self.repository.next_value(period))
