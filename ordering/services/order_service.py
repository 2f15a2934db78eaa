"""
Order Service - Business Logic Layer

Composes orders from carts and drives the fulfillment status lifecycle.
"""
import asyncio
import logging
import math
import random
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple
from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from ordering.auth import Actor, require_admin
from ordering.config import settings
from ordering.database import transaction
from ordering.exceptions import (
    AuthorizationError,
    CatalogUnavailable,
    EmptyCart,
    InvalidPaymentMethod,
    InvalidStatusTransition,
    ItemNotFound,
    MissingDeliveryAddress,
    OrderNotCancellable,
    OrderNotFound,
    PaymentCodeGenerationFailed,
    ValidationError,
)
from ordering.models.order import Order
from ordering.models.user import User
from ordering.publishers.notification_publisher import (
    ORDER_CREATED,
    ORDER_STATUS_CHANGED,
    NotificationDispatcher,
    NullNotificationDispatcher,
)
from ordering.repositories.order_repository import OrderRepository
from ordering.schemas.order import (
    DeliveryAddress,
    OrderActionResponse,
    OrderCreate,
    OrderCreatedResponse,
    OrderItemCreate,
    OrderResponse,
    PixPaymentInfo,
)
from ordering.services.coupon_service import CENTS, CouponQuote, CouponService
from ordering.services.loyalty_service import LoyaltyService
from ordering.services.menu_client import (
    MenuServiceClient,
    MenuServiceError,
    MenuServiceUnavailableError,
    PlateNotFoundError,
)
from ordering.services.notification_templates import (
    format_new_order_message,
    format_order_status_message,
)
from ordering.services.pix_provider import HttpPixCodeProvider, PixCharge, PixCodeProvider
from ordering.services.sequence import OrderNumberGenerator
from ordering.state_machine import (
    CANCELLABLE_STATUSES,
    DeliveryType,
    OrderStatus,
    PaymentMethod,
    ensure_order_transition,
    initial_payment_status,
    parse_payment_status,
)

logger = logging.getLogger(__name__)

PAYMENT_INSTRUCTIONS = {
    PaymentMethod.CASH: "Pay in cash on delivery or pickup.",
    PaymentMethod.CARD: "Pay by card on the machine on delivery or pickup.",
    PaymentMethod.PIX: (
        "Scan the QR code or copy the Pix code to pay. "
        "The order is confirmed once the payment is verified."
    ),
}


class OrderService:
    """Service layer for order business logic"""

    def __init__(
        self,
        db: Session,
        menu_client: MenuServiceClient = None,
        pix_provider: PixCodeProvider = None,
        notifier: NotificationDispatcher = None,
        rng: random.Random = None,
        background: BackgroundTasks = None,
    ):
        self.db = db
        self.repository = OrderRepository(db)
        self.coupons = CouponService(db)
        self.loyalty = LoyaltyService(db)
        self.order_numbers = OrderNumberGenerator(db)
        self.menu_client = menu_client or MenuServiceClient()
        self.pix_provider = pix_provider or HttpPixCodeProvider()
        self.notifier = notifier or NullNotificationDispatcher()
        self.rng = rng or random.Random()
        self.background = background

    # ------------------------------------------------------------ create

    async def create_order(self, actor: Actor, order_data: OrderCreate) -> OrderCreatedResponse:
        """
        Create new order

        Steps:
        1. Validate input
        2. Resolve every line against the menu and price the cart
        3. Validate the coupon, if any
        4. Allocate the order number (own short transaction)
        5. Generate the Pix code, if paying by Pix, outside any transaction
        6. Save order, items, coupon redemption and loyalty credit
           in one transaction
        7. Notify the restaurant (best effort, after commit)

        Raises:
            EmptyCart, MissingDeliveryAddress, InvalidPaymentMethod,
            ItemNotFound, CatalogUnavailable, coupon errors,
            PaymentCodeGenerationFailed
        """
        # Step 1: Validate input
        if not order_data.items:
            raise EmptyCart()

        delivery_type = self._parse_delivery_type(order_data.delivery_type)
        delivery_address = self._format_address(order_data.delivery_address)
        if delivery_type is DeliveryType.DELIVERY and not delivery_address:
            raise MissingDeliveryAddress()

        payment_method = self._parse_payment_method(order_data.payment_method)

        # Step 2: Price the cart from the current menu
        items, subtotal = await self._price_items(order_data.items)

        delivery_fee = (
            Decimal(settings.DELIVERY_FEE).quantize(CENTS)
            if delivery_type is DeliveryType.DELIVERY else Decimal("0.00")
        )

        # Step 3: Coupon
        quote: Optional[CouponQuote] = None
        discount = Decimal("0.00")
        if order_data.coupon_code:
            quote = self.coupons.validate(order_data.coupon_code, actor.user_id, subtotal)
            discount = min(quote.discount, subtotal)

        total = subtotal + delivery_fee - discount
        loyalty_points_earned = math.floor((subtotal - discount) * settings.POINTS_PER_CURRENCY_UNIT)
        estimated_time = self.rng.randint(settings.PREP_TIME_MIN, settings.PREP_TIME_MAX)
        payment_status = initial_payment_status(payment_method.value)
        customer = self.db.get(User, actor.user_id)
        customer_name = customer.name if customer else f"User {actor.user_id}"

        # Step 4: Order number, committed on its own. The counter row is
        # never locked across the Pix call; a failed order burns its number.
        with transaction(self.db):
            order_number = self.order_numbers.next_number()

        # Step 5: Pix code
        charge: Optional[PixCharge] = None
        if payment_method is PaymentMethod.PIX:
            charge = await self._generate_pix(total, order_number)

        # Step 6: Persist
        with transaction(self.db):
            order = self.repository.add(
                {
                    "user_id": actor.user_id,
                    "order_number": order_number,
                    "subtotal": subtotal,
                    "delivery_fee": delivery_fee,
                    "discount": discount,
                    "total": total,
                    "status": OrderStatus.PENDING.value,
                    "delivery_type": delivery_type.value,
                    "delivery_address": delivery_address,
                    "delivery_phone": order_data.delivery_phone,
                    "delivery_notes": order_data.delivery_notes,
                    "estimated_time": estimated_time,
                    "loyalty_points_earned": loyalty_points_earned,
                    "coupon_code": quote.coupon.code if quote else None,
                    "payment_method": payment_method.value,
                    "payment_status": payment_status.value,
                    "pix_code": charge.code if charge else None,
                    "pix_qr_code": charge.display_image if charge else None,
                    "pix_expires_at": charge.expires_at if charge else None,
                },
                items,
            )

            if quote is not None:
                self.coupons.redeem(quote.coupon, actor.user_id, order.id)

            self.loyalty.credit(actor.user_id, loyalty_points_earned)

            # Commit expires the order; keep what is needed afterwards
            order_id = order.id
            message = render_notification(
                lambda: format_new_order_message(order, order.items, customer_name),
                ORDER_CREATED,
                order_number,
            )

        logger.info(
            "Order created - ID: %s, Number: %s, User: %s, Total: %s, Items: %s",
            order_id, order_number, actor.user_id, total, len(items)
        )

        # Step 7: Notify the restaurant
        send_notification(
            self.notifier,
            settings.RESTAURANT_WHATSAPP,
            lambda: message,
            ORDER_CREATED,
            order_number,
            self.background,
        )

        response = OrderCreatedResponse(
            order_id=order_id,
            order_number=order_number,
            total=total,
            estimated_time=estimated_time,
            loyalty_points_earned=loyalty_points_earned,
            payment_method=payment_method.value,
            payment_status=payment_status.value,
        )
        if charge is not None:
            response.pix = PixPaymentInfo(
                code=charge.code,
                qr_code=charge.display_image,
                expires_at=charge.expires_at,
                instructions=PAYMENT_INSTRUCTIONS[PaymentMethod.PIX],
            )
        else:
            response.instructions = PAYMENT_INSTRUCTIONS[payment_method]
        return response

    async def _price_items(self, lines: List[OrderItemCreate]) -> Tuple[List[dict], Decimal]:
        """Snapshot name and price per line; returns (items, subtotal)"""
        plates: Dict[int, dict] = {}
        items = []
        subtotal = Decimal("0.00")

        for line in lines:
            if line.plate_id not in plates:
                try:
                    plates[line.plate_id] = await self.menu_client.get_plate(line.plate_id)
                except PlateNotFoundError:
                    raise ItemNotFound(f"Plate {line.plate_id} not found")
                except (MenuServiceUnavailableError, MenuServiceError) as e:
                    raise CatalogUnavailable(str(e))

            plate = plates[line.plate_id]
            unit_price = Decimal(plate["price"]).quantize(CENTS)
            line_subtotal = unit_price * line.quantity
            subtotal += line_subtotal
            items.append({
                "plate_id": line.plate_id,
                "plate_name": plate["name"],
                "unit_price": unit_price,
                "quantity": line.quantity,
                "subtotal": line_subtotal,
                "notes": line.notes,
            })

        return items, subtotal

    async def _generate_pix(self, total: Decimal, order_number: str) -> PixCharge:
        description = f"Order {order_number} - {settings.RESTAURANT_NAME}"
        try:
            return await asyncio.wait_for(
                self.pix_provider.generate(total, order_number, description),
                timeout=settings.PIX_GENERATION_TIMEOUT,
            )
        except PaymentCodeGenerationFailed:
            raise
        except asyncio.TimeoutError:
            raise PaymentCodeGenerationFailed("Pix code generation timed out")
        except Exception as e:
            raise PaymentCodeGenerationFailed(f"Could not generate the Pix payment code: {e}")

    @staticmethod
    def _parse_delivery_type(value: Optional[str]) -> DeliveryType:
        try:
            return DeliveryType(value or DeliveryType.DELIVERY.value)
        except ValueError:
            raise ValidationError(f"Invalid delivery type: {value}")

    @staticmethod
    def _parse_payment_method(value: Optional[str]) -> PaymentMethod:
        try:
            return PaymentMethod(value or PaymentMethod.CASH.value)
        except ValueError:
            raise InvalidPaymentMethod()

    @staticmethod
    def _format_address(address) -> Optional[str]:
        if isinstance(address, DeliveryAddress):
            return address.format()
        if address is not None and address.strip():
            return address.strip()
        return None

    # ------------------------------------------------------------ read

    def list_orders(self, actor: Actor) -> List[OrderResponse]:
        """Admins see every order, customers their own"""
        if actor.is_admin:
            orders = self.repository.get_all(limit=1000)
        else:
            orders = self.repository.get_by_user(actor.user_id)
        return [OrderResponse.model_validate(o) for o in orders]

    def get_order(self, actor: Actor, order_id: int) -> OrderResponse:
        order = self._get(order_id)
        if not actor.is_admin and order.user_id != actor.user_id:
            raise AuthorizationError("You are not allowed to view this order")
        return OrderResponse.model_validate(order)

    def list_by_payment_status(self, actor: Actor, payment_status: str) -> List[OrderResponse]:
        require_admin(actor, "Only administrators can list orders by payment status")
        status = parse_payment_status(payment_status)
        return [OrderResponse.model_validate(o) for o in self.repository.get_by_payment_status(status.value)]

    # ------------------------------------------------------------ status

    def update_order_status(self, actor: Actor, order_id: int, new_status: str) -> OrderActionResponse:
        """
        Move an order along the fulfillment pipeline (admin only)

        Raises:
            AuthorizationError, ValidationError, OrderNotFound,
            InvalidStatusTransition
        """
        require_admin(actor, "Only administrators can update orders")

        order = self._get(order_id)
        target = ensure_order_transition(order.status, new_status)
        self._apply_status(order, target)

        logger.info("Order %s moved to %s by admin %s", order.order_number, target.value, actor.user_id)
        self._notify_status(order)
        return self._ack(order, "Order status updated successfully")

    def cancel_order(self, actor: Actor, order_id: int) -> OrderActionResponse:
        """Owner or admin may cancel while the order is pending or confirmed"""
        order = self._get(order_id)
        if not actor.is_admin and order.user_id != actor.user_id:
            raise AuthorizationError("You are not allowed to cancel this order")

        if OrderStatus(order.status) not in CANCELLABLE_STATUSES:
            raise OrderNotCancellable(
                "Order cannot be cancelled in its current status. Please contact the restaurant."
            )
        self._apply_status(order, OrderStatus.CANCELLED)

        logger.info("Order %s cancelled by user %s", order.order_number, actor.user_id)
        self._notify_status(order)
        return self._ack(order, "Order cancelled successfully")

    def _apply_status(self, order: Order, target: OrderStatus) -> None:
        current = order.status
        with transaction(self.db):
            updated = self.repository.update_fields(
                order.id, guard={"status": current}, values={"status": target.value}
            )
            if not updated:
                # Someone else moved the order between read and write
                raise InvalidStatusTransition(current, target.value)
        self.repository.refresh(order)

    # ------------------------------------------------------------ helpers

    def _get(self, order_id: int) -> Order:
        order = self.repository.get_by_id(order_id)
        if order is None:
            raise OrderNotFound()
        return order

    @staticmethod
    def _ack(order: Order, message: str) -> OrderActionResponse:
        return OrderActionResponse(
            message=message,
            order_number=order.order_number,
            status=order.status,
            payment_status=order.payment_status,
        )

    def _notify_status(self, order: Order) -> None:
        send_notification(
            self.notifier,
            order.delivery_phone,
            lambda: format_order_status_message(order),
            ORDER_STATUS_CHANGED,
            order.order_number,
            self.background,
        )


def render_notification(render: Callable[[], Optional[str]], event_type: str,
                        order_number: str) -> Optional[str]:
    """Build a message body; a template error is logged, not raised"""
    try:
        return render()
    except Exception as e:
        logger.error("Failed to render %s notification for order %s: %s", event_type, order_number, e)
        return None


def deliver_notification(notifier: NotificationDispatcher, recipient: str, message: str,
                         event_type: str, order_number: str) -> None:
    try:
        notifier.notify(recipient, message, event_type, order_number)
    except Exception as e:
        logger.error("Failed to send %s notification for order %s: %s", event_type, order_number, e)


def send_notification(notifier: NotificationDispatcher, recipient: Optional[str],
                      render: Callable[[], Optional[str]], event_type: str, order_number: str,
                      background: Optional[BackgroundTasks] = None) -> None:
    """
    Fire-and-forget notification with its own error boundary

    Called after the transaction committed; nothing raised here reaches
    the caller. The message is rendered right away. With ``background``
    the publish runs as a background task once the response is sent,
    otherwise it runs inline.
    """
    if not recipient:
        logger.warning("No recipient for %s notification of order %s", event_type, order_number)
        return
    message = render_notification(render, event_type, order_number)
    if message is None:
        return
    if background is None:
        deliver_notification(notifier, recipient, message, event_type, order_number)
    else:
        background.add_task(deliver_notification, notifier, recipient, message, event_type, order_number)
