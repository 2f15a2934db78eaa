"""
Shared API dependencies
"""
from typing import Optional

from fastapi import BackgroundTasks, Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from ordering.auth import Actor
from ordering.database import get_db
from ordering.publishers.notification_publisher import NotificationDispatcher, NullNotificationDispatcher
from ordering.services.coupon_service import CouponService
from ordering.services.loyalty_service import LoyaltyService
from ordering.services.menu_client import MenuServiceClient
from ordering.services.order_service import OrderService
from ordering.services.payment_service import PaymentService
from ordering.services.pix_provider import HttpPixCodeProvider, PixCodeProvider


def get_current_actor(
    x_user_id: Optional[int] = Header(None, description="Authenticated user ID set by the gateway"),
    x_user_role: Optional[str] = Header(None, description="Role of the authenticated user"),
) -> Actor:
    """Caller identity forwarded by the authenticating gateway"""
    if x_user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required"
        )
    return Actor(user_id=x_user_id, role=(x_user_role or "customer").lower())


def get_notifier(request: Request) -> NotificationDispatcher:
    """Dispatcher selected at startup"""
    return getattr(request.app.state, "notifier", None) or NullNotificationDispatcher()


def get_menu_client() -> MenuServiceClient:
    return MenuServiceClient()


def get_pix_provider() -> PixCodeProvider:
    return HttpPixCodeProvider()


def get_order_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    menu_client: MenuServiceClient = Depends(get_menu_client),
    pix_provider: PixCodeProvider = Depends(get_pix_provider),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> OrderService:
    """Dependency to get OrderService instance; notifications go out after the response"""
    return OrderService(
        db,
        menu_client=menu_client,
        pix_provider=pix_provider,
        notifier=notifier,
        background=background_tasks,
    )


def get_payment_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> PaymentService:
    return PaymentService(db, notifier=notifier, background=background_tasks)


def get_coupon_service(db: Session = Depends(get_db)) -> CouponService:
    return CouponService(db)


def get_loyalty_service(db: Session = Depends(get_db)) -> LoyaltyService:
    return LoyaltyService(db)
