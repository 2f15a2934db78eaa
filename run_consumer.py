#!/usr/bin/env python
"""
Script to run the RabbitMQ notification consumer
"""
from ordering.consumers.notification_consumer import start_consumer
from ordering.logging_config import setup_logging

if __name__ == "__main__":
    setup_logging()
    start_consumer()
