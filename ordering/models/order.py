"""
SQLAlchemy Order, OrderItem and OrderSequence models
"""
from sqlalchemy import (
    Boolean, Column, Integer, String, Numeric, DateTime, Text, ForeignKey, CheckConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ordering.database import Base


class Order(Base):
    """Order database model"""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    # Gateway identity; a users row is not required
    user_id = Column(Integer, nullable=False, index=True)
    order_number = Column(String(32), nullable=False, unique=True, index=True)

    subtotal = Column(Numeric(10, 2), nullable=False)
    delivery_fee = Column(Numeric(10, 2), nullable=False, default=0)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False)

    status = Column(String(32), nullable=False, default='pending', index=True)

    delivery_type = Column(String(16), nullable=False, default='delivery')
    delivery_address = Column(Text, nullable=True)
    delivery_phone = Column(String(32), nullable=True)
    delivery_notes = Column(Text, nullable=True)
    estimated_time = Column(Integer, nullable=True)  # minutes

    loyalty_points_earned = Column(Integer, nullable=False, default=0)
    coupon_code = Column(String(64), nullable=True)

    payment_method = Column(String(16), nullable=False, default='cash')
    payment_status = Column(String(16), nullable=False, default='pending', index=True)
    pix_code = Column(Text, nullable=True)
    pix_qr_code = Column(Text, nullable=True)
    pix_expires_at = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    # Payment audit
    confirmed_by = Column(Integer, nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    payment_notes = Column(Text, nullable=True)
    payment_manually_confirmed = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    items = relationship("OrderItem", back_populates="order", order_by="OrderItem.id")
    user = relationship("User", primaryjoin="foreign(Order.user_id) == User.id", viewonly=True)
    confirmer = relationship("User", primaryjoin="foreign(Order.confirmed_by) == User.id", viewonly=True)

    # Constraints
    __table_args__ = (
        CheckConstraint('discount <= subtotal', name='check_discount_within_subtotal'),
        CheckConstraint('total >= 0', name='check_total_non_negative'),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'preparing', 'ready', "
            "'out_for_delivery', 'delivered', 'cancelled')",
            name='check_status_valid'
        ),
        CheckConstraint("payment_method IN ('cash', 'card', 'pix')", name='check_payment_method_valid'),
        CheckConstraint("payment_status IN ('pending', 'paid', 'confirmed')", name='check_payment_status_valid'),
    )

    def __repr__(self):
        return f"<Order(id={self.id}, number='{self.order_number}', status='{self.status}', payment='{self.payment_status}')>"


class OrderItem(Base):
    """Order line, snapshotting plate name and price at order time"""

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    plate_id = Column(Integer, nullable=False)
    plate_name = Column(String(255), nullable=False)  # Denormalized for history
    unit_price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    order = relationship("Order", back_populates="items")

    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_quantity_positive'),
    )

    def __repr__(self):
        return f"<OrderItem(order_id={self.order_id}, plate='{self.plate_name}', quantity={self.quantity})>"


class OrderSequence(Base):
    """Per-period order number counter"""

    __tablename__ = "order_sequences"

    period = Column(Integer, primary_key=True, autoincrement=False)
    last_value = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<OrderSequence(period={self.period}, last_value={self.last_value})>"
