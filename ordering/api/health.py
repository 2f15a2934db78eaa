"""
Health check endpoint

The database is required for every operation. The menu and Pix services
and the broker only affect order placement or notifications, so losing
one of them reports the service as degraded rather than unhealthy.
"""
import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import text
from sqlalchemy.orm import Session

from ordering.api.deps import get_notifier
from ordering.config import settings
from ordering.database import get_db
from ordering.publishers.notification_publisher import NotificationDispatcher, RabbitMQNotificationDispatcher
from ordering.timeutils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

HEALTHY = "healthy"


def get_health_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Transport for dependency checks; None means the network"""
    return None


def check_database(db: Session) -> str:
    try:
        db.execute(text("SELECT 1"))
        return HEALTHY
    except Exception as e:
        logger.warning("Database health check failed: %s", e)
        return f"unhealthy: {e}"


async def check_http_dependency(name: str, url: str,
                                transport: Optional[httpx.AsyncBaseTransport] = None) -> str:
    try:
        async with httpx.AsyncClient(timeout=2.0, transport=transport) as client:
            response = await client.get(f"{url}/health")
    except httpx.HTTPError as e:
        logger.warning("%s health check failed: %s", name, e)
        return f"unhealthy: {e}"
    if response.status_code != 200:
        return f"unhealthy: status {response.status_code}"
    return HEALTHY


def check_broker(notifier: NotificationDispatcher) -> str:
    if not isinstance(notifier, RabbitMQNotificationDispatcher):
        return "disabled"
    try:
        notifier.ping()
        return HEALTHY
    except Exception as e:
        logger.warning("Broker health check failed: %s", e)
        return f"unhealthy: {e}"


@router.get("/health")
async def health_check(
    db: Session = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_health_transport),
):
    """
    Report the state of the service and each collaborator

    Checks:
    - Database connectivity
    - Menu Service and Pix charge service
    - RabbitMQ, when notifications are enabled
    """
    checks = {
        "database": await run_in_threadpool(check_database, db),
        "menu_service": await check_http_dependency("Menu Service", settings.MENU_SERVICE_URL, transport),
        "pix_service": await check_http_dependency("Pix service", settings.PIX_SERVICE_URL, transport),
        "broker": await run_in_threadpool(check_broker, notifier),
    }

    if checks["database"] != HEALTHY:
        overall_status = "unhealthy"
    elif any(state.startswith("unhealthy") for state in checks.values()):
        overall_status = "degraded"
    else:
        overall_status = HEALTHY

    return {
        "service": settings.SERVICE_NAME,
        "status": overall_status,
        **checks,
        "timestamp": utcnow().isoformat()
    }


@router.get("/")
def root():
    """Root endpoint"""
    return {
        "service": settings.SERVICE_NAME,
        "version": "1.0.0",
        "docs": "/docs"
    }
