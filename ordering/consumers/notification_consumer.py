"""
RabbitMQ Consumer for order notification events
"""
import json
import logging
import sys

import pika

from ordering.config import settings
from ordering.publishers.notification_publisher import ROUTING_KEYS
from ordering.services.message_sender import MessageSender, build_message_sender

logger = logging.getLogger(__name__)


def handle_event(sender: MessageSender, body: bytes) -> bool:
    """
    Deliver one notification event

    Args:
        sender: Delivery channel
        body: Message body (JSON string)

    Returns:
        True if the message was delivered
    """
    event = json.loads(body)
    event_id = event.get("event_id")
    event_type = event.get("event_type")
    data = event.get("data") or {}

    logger.info("Received event: %s (ID: %s)", event_type, event_id)

    recipient = data.get("recipient")
    message = data.get("message")
    if not recipient or not message:
        logger.error("Event %s has no recipient or message", event_id)
        return False

    return sender.send(recipient, message, data.get("order_number"))


def make_callback(sender: MessageSender):
    """Build the pika callback; ack on success, nack without requeue otherwise"""

    def callback(ch, method, properties, body):
        try:
            success = handle_event(sender, body)
        except json.JSONDecodeError as e:
            logger.error("Invalid JSON: %s", e)
            success = False
        except Exception as e:
            logger.error("Error processing event: %s", e)
            success = False

        if success:
            ch.basic_ack(delivery_tag=method.delivery_tag)
        else:
            ch.basic_nack(delivery_tag=method.delivery_tag, requeue=False)

    return callback


def start_consumer():
    """
    Start RabbitMQ consumer

    Connects to RabbitMQ and starts consuming notification events
    """
    sender = build_message_sender()
    connection = None
    try:
        logger.info("Connecting to RabbitMQ: %s", settings.RABBITMQ_URL)
        connection = pika.BlockingConnection(pika.URLParameters(settings.RABBITMQ_URL))
        channel = connection.channel()

        channel.exchange_declare(
            exchange=settings.RABBITMQ_EXCHANGE,
            exchange_type='topic',
            durable=True
        )
        channel.queue_declare(queue=settings.RABBITMQ_NOTIFICATION_QUEUE, durable=True)

        for routing_key in ROUTING_KEYS.values():
            channel.queue_bind(
                exchange=settings.RABBITMQ_EXCHANGE,
                queue=settings.RABBITMQ_NOTIFICATION_QUEUE,
                routing_key=routing_key
            )
            logger.info("Queue bound to exchange with routing key: %s", routing_key)

        # Set prefetch count (QoS)
        channel.basic_qos(prefetch_count=5)

        channel.basic_consume(
            queue=settings.RABBITMQ_NOTIFICATION_QUEUE,
            on_message_callback=make_callback(sender),
            auto_ack=False  # Manual acknowledgement
        )

        logger.info("Waiting for notification events on queue: %s", settings.RABBITMQ_NOTIFICATION_QUEUE)
        channel.start_consuming()

    except KeyboardInterrupt:
        logger.info("Consumer stopped by user")
        if connection is not None and connection.is_open:
            connection.close()
        sys.exit(0)
    except Exception as e:
        logger.error("Error starting consumer: %s", e)
        sys.exit(1)
