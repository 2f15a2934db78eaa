"""
Notification dispatchers

Messages are published to RabbitMQ and delivered by the notification
consumer. When notifications are disabled a no-op dispatcher with the
same interface is used instead.
"""
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

import pika

from ordering.config import settings

logger = logging.getLogger(__name__)

ORDER_CREATED = "OrderCreated"
ORDER_STATUS_CHANGED = "OrderStatusChanged"
PAYMENT_CONFIRMED = "PaymentConfirmed"

ROUTING_KEYS = {
    ORDER_CREATED: "notification.order.created",
    ORDER_STATUS_CHANGED: "notification.order.status.changed",
    PAYMENT_CONFIRMED: "notification.payment.confirmed",
}


class NotificationDispatcher:
    """Best-effort outbound messages"""

    def notify(self, recipient: str, message: str, event_type: str,
               order_number: Optional[str] = None) -> bool:
        raise NotImplementedError


class NullNotificationDispatcher(NotificationDispatcher):
    """Used when notifications are disabled"""

    def notify(self, recipient: str, message: str, event_type: str,
               order_number: Optional[str] = None) -> bool:
        logger.debug("Notifications disabled - %s for %s not sent", event_type, order_number)
        return False


class RabbitMQNotificationDispatcher(NotificationDispatcher):
    """Publisher for sending notification events to RabbitMQ"""

    def __init__(self, rabbitmq_url: str = None, exchange: str = None, timeout: float = None):
        self.rabbitmq_url = rabbitmq_url or settings.RABBITMQ_URL
        self.exchange = exchange or settings.RABBITMQ_EXCHANGE
        self.timeout = timeout or settings.EXTERNAL_TIMEOUT

    def _connection_parameters(self) -> pika.URLParameters:
        parameters = pika.URLParameters(self.rabbitmq_url)
        parameters.connection_attempts = 1
        parameters.socket_timeout = self.timeout
        parameters.stack_timeout = self.timeout
        parameters.blocked_connection_timeout = self.timeout
        return parameters

    def ping(self) -> None:
        """Open and close a connection; raises if the broker is unreachable"""
        connection = pika.BlockingConnection(self._connection_parameters())
        connection.close()

    def build_event(self, recipient: str, message: str, event_type: str,
                    order_number: Optional[str] = None) -> dict:
        return {
            "event_type": event_type,
            "event_id": str(uuid.uuid4()),
            "event_version": "1.0",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "source": settings.SERVICE_NAME,
            "data": {
                "recipient": recipient,
                "message": message,
                "order_number": order_number,
            }
        }

    def notify(self, recipient: str, message: str, event_type: str,
               order_number: Optional[str] = None) -> bool:
        """
        Publish a notification event to RabbitMQ

        Returns:
            True if published successfully, False otherwise
        """
        event = self.build_event(recipient, message, event_type, order_number)
        connection = None
        try:
            connection = pika.BlockingConnection(self._connection_parameters())
            channel = connection.channel()

            channel.exchange_declare(
                exchange=self.exchange,
                exchange_type='topic',
                durable=True
            )

            # Enable publisher confirms
            channel.confirm_delivery()

            channel.basic_publish(
                exchange=self.exchange,
                routing_key=ROUTING_KEYS.get(event_type, "notification.other"),
                body=json.dumps(event),
                properties=pika.BasicProperties(
                    delivery_mode=2,  # Persistent message
                    content_type='application/json',
                    correlation_id=event["event_id"]
                ),
                mandatory=True
            )

            logger.info("Notification published: %s (ID: %s)", event_type, event["event_id"])
            return True

        except pika.exceptions.UnroutableError:
            logger.error("Notification %s could not be routed to any queue", event["event_id"])
            return False
        except Exception as e:
            logger.error("Error publishing notification %s: %s", event_type, e)
            return False
        finally:
            if connection is not None and connection.is_open:
                connection.close()


def build_notification_dispatcher(enabled: bool = None) -> NotificationDispatcher:
    """Select the dispatcher once at process start"""
    if enabled is None:
        enabled = settings.NOTIFICATIONS_ENABLED
    if enabled:
        logger.info("Notifications enabled via RabbitMQ at %s", settings.RABBITMQ_URL)
        return RabbitMQNotificationDispatcher()
    logger.info("Notifications disabled by configuration")
    return NullNotificationDispatcher()
