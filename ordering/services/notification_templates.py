"""
Chat message templates for order notifications
"""
from decimal import Decimal
from typing import Iterable

from ordering.config import settings

PAYMENT_METHOD_TEXT = {
    "cash": "Cash",
    "pix": "Pix",
    "card": "Card",
}

DELIVERY_TYPE_TEXT = {
    "delivery": "Delivery",
    "pickup": "Pickup",
}

STATUS_TEXT = {
    "pending": "Awaiting confirmation",
    "confirmed": "Confirmed",
    "preparing": "Being prepared",
    "ready": "Ready",
    "out_for_delivery": "Out for delivery",
    "delivered": "Delivered",
    "cancelled": "Cancelled",
}


def _money(value) -> str:
    return f"R$ {Decimal(value):.2f}"


def format_new_order_message(order, items: Iterable, customer_name: str) -> str:
    """Message sent to the restaurant when an order is placed"""
    lines = [
        f"*NEW ORDER - {settings.RESTAURANT_NAME}*",
        "",
        f"*Order:* {order.order_number}",
        f"*Customer:* {customer_name}",
        DELIVERY_TYPE_TEXT.get(order.delivery_type, order.delivery_type),
        PAYMENT_METHOD_TEXT.get(order.payment_method, order.payment_method),
        "",
        "*Items:*",
    ]
    for item in items:
        lines.append(f"- {item.quantity}x {item.plate_name} - {_money(item.subtotal)}")
    lines += ["", f"*Total:* {_money(order.total)}"]

    if order.delivery_type == "delivery" and order.delivery_address:
        lines += ["", "*Address:*", order.delivery_address]
        if order.delivery_notes:
            lines.append(f"*Notes:* {order.delivery_notes}")
    if order.delivery_phone:
        lines += ["", f"*Contact:* {order.delivery_phone}"]

    lines += ["", f"*Estimated time:* {order.estimated_time} min"]
    return "\n".join(lines)


def format_order_status_message(order) -> str:
    """Message sent to the customer when the fulfillment status changes"""
    lines = [
        f"*{settings.RESTAURANT_NAME}*",
        "",
        f"*Order:* {order.order_number}",
        STATUS_TEXT.get(order.status, order.status),
        "",
    ]

    if order.status == "confirmed":
        lines.append("Your order was confirmed and will be prepared shortly!")
        lines.append(f"Estimated time: {order.estimated_time} min")
    elif order.status == "preparing":
        lines.append("Your order is being prepared!")
    elif order.status == "ready":
        if order.delivery_type == "delivery":
            lines.append("Your order is ready and will leave for delivery in a moment!")
        else:
            lines.append("Your order is ready for pickup!")
    elif order.status == "out_for_delivery":
        lines.append("Your order is on its way!")
    elif order.status == "delivered":
        lines.append("Your order was delivered. Enjoy your meal!")
        lines.append("Thank you for ordering with us!")
    elif order.status == "cancelled":
        lines.append("Your order was cancelled.")

    return "\n".join(lines).rstrip()


def format_payment_confirmed_message(order) -> str:
    """Message sent to the customer when staff confirm the payment"""
    return "\n".join([
        "*Payment confirmed!*",
        "",
        f"*{settings.RESTAURANT_NAME}*",
        f"*Order:* {order.order_number}",
        f"*Amount:* {_money(order.total)}",
        "",
        "Your payment was confirmed and your order will be prepared shortly.",
        "",
        f"Estimated time: {order.estimated_time} min",
    ])
