"""
Shared fixtures: SQLite database, fake collaborators and seeded users
"""
import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["NOTIFICATIONS_ENABLED"] = "false"

import random
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ordering import models  # noqa: F401
from ordering.auth import Actor
from ordering.database import Base
from ordering.exceptions import PaymentCodeGenerationFailed
from ordering.models import Coupon, User
from ordering.publishers.notification_publisher import NotificationDispatcher
from ordering.services.menu_client import MenuServiceUnavailableError, PlateNotFoundError
from ordering.services.order_service import OrderService
from ordering.services.payment_service import PaymentService
from ordering.services.pix_provider import PixCharge, PixCodeProvider, calculate_expiration
from ordering.timeutils import utcnow

CUSTOMER = Actor(user_id=1)
ADMIN = Actor(user_id=2, role="admin")
OTHER_CUSTOMER = Actor(user_id=3)

PLATES = {
    1: {"id": 1, "name": "Salmon Sashimi", "price": Decimal("50.00")},
    2: {"id": 2, "name": "Miso Soup", "price": Decimal("10.00")},
    3: {"id": 3, "name": "Hot Roll", "price": Decimal("33.33")},
}


def enable_sqlite_transactions(engine, begin_statement="BEGIN", foreign_keys=False):
    """Let SQLAlchemy, not pysqlite, emit BEGIN so SAVEPOINT behaves"""

    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        if foreign_keys:
            dbapi_connection.execute("PRAGMA foreign_keys=ON")

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql(begin_statement)

    return engine


class FakeMenuClient:
    def __init__(self, plates=None):
        self.plates = dict(PLATES if plates is None else plates)
        self.unavailable = False
        self.calls = []

    async def get_plate(self, plate_id):
        self.calls.append(plate_id)
        if self.unavailable:
            raise MenuServiceUnavailableError("Menu Service unavailable: connection refused")
        if plate_id not in self.plates:
            raise PlateNotFoundError(f"Plate {plate_id} not found")
        return dict(self.plates[plate_id])


class FakePixProvider(PixCodeProvider):
    def __init__(self):
        self.fail = False
        self.calls = []

    async def generate(self, amount, reference, description):
        self.calls.append((amount, reference, description))
        if self.fail:
            raise PaymentCodeGenerationFailed("Pix service unavailable")
        return PixCharge(
            code=f"00020126PIX{reference}",
            display_image="data:image/png;base64,iVBORw0KGgo=",
            expires_at=calculate_expiration(30),
        )


class RecordingNotifier(NotificationDispatcher):
    def __init__(self):
        self.fail = False
        self.sent = []

    def notify(self, recipient, message, event_type, order_number=None):
        if self.fail:
            raise RuntimeError("broker down")
        self.sent.append({
            "recipient": recipient,
            "message": message,
            "event_type": event_type,
            "order_number": order_number,
        })
        return True


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_transactions(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def file_engine(tmp_path):
    """File database for tests that need real concurrent connections"""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'ordering.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    enable_sqlite_transactions(engine, "BEGIN IMMEDIATE")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def strict_db():
    """In-memory database that enforces foreign keys"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_transactions(engine, foreign_keys=True)
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def users(db):
    users = [
        User(id=1, name="Ana Souza", email="ana@example.com"),
        User(id=2, name="Admin", email="admin@example.com"),
        User(id=3, name="Bruno Lima", email="bruno@example.com"),
    ]
    db.add_all(users)
    db.commit()
    return users


@pytest.fixture
def menu_client():
    return FakeMenuClient()


@pytest.fixture
def pix_provider():
    return FakePixProvider()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def order_service(db, users, menu_client, pix_provider, notifier):
    return OrderService(
        db,
        menu_client=menu_client,
        pix_provider=pix_provider,
        notifier=notifier,
        rng=random.Random(7),
    )


@pytest.fixture
def payment_service(db, users, notifier):
    return PaymentService(db, notifier=notifier)


@pytest.fixture
def make_coupon(db):
    """Insert a coupon; defaults to an active, unlimited 10% coupon"""

    def factory(**overrides):
        values = {
            "code": "SAVE10",
            "description": "10% off",
            "discount_type": "percentage",
            "discount_value": Decimal("10"),
            "min_order_value": Decimal("0"),
            "usage_limit": None,
            "usage_count": 0,
            "usage_per_user": 1,
            "valid_from": utcnow() - timedelta(days=1),
            "valid_until": None,
            "is_active": True,
        }
        values.update(overrides)
        coupon = Coupon(**values)
        db.add(coupon)
        db.commit()
        return coupon

    return factory
