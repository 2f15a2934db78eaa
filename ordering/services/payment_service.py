"""
Payment Service - manual payment confirmation and rejection
"""
import logging
from datetime import datetime
from typing import List, Optional
from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from ordering.auth import Actor, require_admin
from ordering.database import transaction
from ordering.exceptions import (
    InvalidStatusTransition,
    OrderNotFound,
    PaymentAlreadyConfirmed,
    ValidationError,
)
from ordering.models.order import Order
from ordering.publishers.notification_publisher import (
    ORDER_STATUS_CHANGED,
    PAYMENT_CONFIRMED,
    NotificationDispatcher,
    NullNotificationDispatcher,
)
from ordering.repositories.order_repository import OrderRepository
from ordering.schemas.order import (
    OrderActionResponse,
    OrderResponse,
    PaymentConfirmationRecord,
)
from ordering.services.notification_templates import (
    format_order_status_message,
    format_payment_confirmed_message,
)
from ordering.services.order_service import send_notification
from ordering.services.pix_provider import is_expired
from ordering.state_machine import (
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    TERMINAL_STATUSES,
    ensure_payment_transition,
)
from ordering.timeutils import utcnow

logger = logging.getLogger(__name__)


class PaymentService:
    """Service layer for payment confirmation by staff"""

    def __init__(self, db: Session, notifier: NotificationDispatcher = None,
                 background: BackgroundTasks = None):
        self.db = db
        self.repository = OrderRepository(db)
        self.notifier = notifier or NullNotificationDispatcher()
        self.background = background

    def confirm_payment(self, actor: Actor, order_id: int, notes: Optional[str] = None) -> OrderActionResponse:
        """
        Mark an order's payment as received

        A pending order is confirmed together with its payment. An expired
        Pix code only produces a warning; staff may have seen the transfer.

        Raises:
            AuthorizationError, OrderNotFound, PaymentAlreadyConfirmed
        """
        require_admin(actor, "Only administrators can confirm payments")

        order = self._get(order_id)
        if order.payment_status == PaymentStatus.CONFIRMED.value:
            raise PaymentAlreadyConfirmed()
        ensure_payment_transition(order.payment_status, PaymentStatus.CONFIRMED.value)

        if order.payment_method == PaymentMethod.PIX.value and is_expired(order.pix_expires_at):
            logger.warning("Confirming payment of order %s with an expired Pix code", order.order_number)

        now = utcnow()
        values = {
            "payment_status": PaymentStatus.CONFIRMED.value,
            "confirmed_by": actor.user_id,
            "confirmed_at": now,
            "payment_notes": notes,
            "payment_manually_confirmed": True,
        }
        if order.paid_at is None:
            values["paid_at"] = now
        if order.status == OrderStatus.PENDING.value:
            values["status"] = OrderStatus.CONFIRMED.value

        with transaction(self.db):
            updated = self.repository.update_fields(
                order.id,
                guard={"payment_status": order.payment_status, "status": order.status},
                values=values,
            )
            if not updated:
                raise PaymentAlreadyConfirmed("Order was changed concurrently; payment not confirmed")
        self.repository.refresh(order)

        logger.info("Payment of order %s confirmed by admin %s", order.order_number, actor.user_id)
        send_notification(
            self.notifier,
            order.delivery_phone,
            lambda: format_payment_confirmed_message(order),
            PAYMENT_CONFIRMED,
            order.order_number,
            self.background,
        )
        return OrderActionResponse(
            message="Payment confirmed successfully",
            order_number=order.order_number,
            status=order.status,
            payment_status=order.payment_status,
        )

    def reject_payment(self, actor: Actor, order_id: int, reason: Optional[str]) -> OrderActionResponse:
        """
        Reject a payment and cancel the order

        Raises:
            AuthorizationError, ValidationError, OrderNotFound,
            InvalidStatusTransition
        """
        require_admin(actor, "Only administrators can reject payments")
        if not reason or not reason.strip():
            raise ValidationError("A rejection reason is required")

        order = self._get(order_id)
        if OrderStatus(order.status) in TERMINAL_STATUSES:
            raise InvalidStatusTransition(order.status, OrderStatus.CANCELLED.value)

        with transaction(self.db):
            updated = self.repository.update_fields(
                order.id,
                guard={"status": order.status},
                values={
                    "payment_status": PaymentStatus.PENDING.value,
                    "status": OrderStatus.CANCELLED.value,
                    "payment_notes": f"Payment rejected: {reason.strip()}",
                    "confirmed_by": actor.user_id,
                    "confirmed_at": utcnow(),
                },
            )
            if not updated:
                raise InvalidStatusTransition(order.status, OrderStatus.CANCELLED.value)
        self.repository.refresh(order)

        logger.info("Payment of order %s rejected by admin %s: %s", order.order_number, actor.user_id, reason)
        send_notification(
            self.notifier,
            order.delivery_phone,
            lambda: format_order_status_message(order),
            ORDER_STATUS_CHANGED,
            order.order_number,
            self.background,
        )
        return OrderActionResponse(
            message="Payment rejected",
            order_number=order.order_number,
            status=order.status,
            payment_status=order.payment_status,
        )

    def list_pending(self, actor: Actor) -> List[OrderResponse]:
        """Orders awaiting payment confirmation, flagged when the Pix code lapsed"""
        require_admin(actor, "Only administrators can list pending payments")

        results = []
        now = utcnow()
        orders = self.repository.get_by_payment_status(PaymentStatus.PENDING.value, PaymentStatus.PAID.value)
        for order in orders:
            if order.status == OrderStatus.CANCELLED.value:
                continue
            response = OrderResponse.model_validate(order)
            if order.payment_method == PaymentMethod.PIX.value:
                response.pix_expired = is_expired(order.pix_expires_at, now)
            results.append(response)
        return results

    def confirmation_history(
        self,
        actor: Actor,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        payment_method: Optional[str] = None,
    ) -> List[PaymentConfirmationRecord]:
        require_admin(actor, "Only administrators can view payment history")

        return [
            PaymentConfirmationRecord(
                id=order.id,
                order_number=order.order_number,
                total=order.total,
                payment_method=order.payment_method,
                payment_status=order.payment_status,
                confirmed_at=order.confirmed_at,
                payment_notes=order.payment_notes,
                payment_manually_confirmed=order.payment_manually_confirmed,
                user_name=order.user.name if order.user else None,
                confirmed_by_name=order.confirmer.name if order.confirmer else None,
            )
            for order in self.repository.get_confirmed_payments(start_date, end_date, payment_method)
        ]

    def _get(self, order_id: int) -> Order:
        order = self.repository.get_by_id(order_id)
        if order is None:
            raise OrderNotFound()
        return order
