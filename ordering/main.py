"""
FastAPI Application Entry Point - Ordering Service
"""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from ordering.config import settings
from ordering.database import init_db
from ordering.exceptions import OrderingError
from ordering.logging_config import setup_logging
from ordering.publishers.notification_publisher import build_notification_dispatcher
from ordering.api import coupons, health, loyalty, orders, payments

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    "validation_error": 400,
    "not_found": 404,
    "authorization_error": 403,
    "business_rule_violation": 409,
    "dependency_failure": 503,
}

# Create FastAPI application
app = FastAPI(
    title="Ordering Service",
    description="Food ordering: orders, payments, coupons and loyalty points",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router)
app.include_router(orders.router)
app.include_router(payments.router)
app.include_router(coupons.router)
app.include_router(loyalty.router)

# Prometheus metrics
Instrumentator().instrument(app).expose(app)


@app.exception_handler(OrderingError)
async def ordering_error_handler(request: Request, exc: OrderingError):
    return JSONResponse(
        status_code=ERROR_STATUS.get(exc.kind, 500),
        content={"error": exc.code, "kind": exc.kind, "message": exc.message},
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "kind": "internal_error", "message": "Internal server error"},
    )


@app.on_event("startup")
def startup_event():
    """Initialize logging, database and notifier on startup"""
    setup_logging()
    logger.info("Starting %s...", settings.SERVICE_NAME)
    init_db()
    logger.info("Database initialized")
    app.state.notifier = build_notification_dispatcher()
    logger.info("Menu Service URL: %s", settings.MENU_SERVICE_URL)
    logger.info("Pix Service URL: %s", settings.PIX_SERVICE_URL)
    logger.info("%s is running on port %s", settings.SERVICE_NAME, settings.SERVICE_PORT)


@app.on_event("shutdown")
def shutdown_event():
    """Cleanup on shutdown"""
    logger.info("Shutting down %s...", settings.SERVICE_NAME)
