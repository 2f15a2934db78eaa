"""
Tests for loyalty point balances
"""
import threading
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker

from conftest import ADMIN, CUSTOMER, OTHER_CUSTOMER
from ordering.database import transaction
from ordering.exceptions import AuthorizationError, InsufficientPoints, ValidationError
from ordering.models import LoyaltyAccount
from ordering.services.loyalty_service import DEFAULT_ADJUST_REASON, LoyaltyService, points_to_currency


@pytest.fixture
def service(db, users):
    return LoyaltyService(db)


def credit(db, service, user_id, points):
    with transaction(db):
        service.credit(user_id, points)


def account(db, user_id):
    db.expire_all()
    return db.query(LoyaltyAccount).filter_by(user_id=user_id).one()


def test_credit_creates_then_accumulates(db, service):
    credit(db, service, CUSTOMER.user_id, 90)
    credit(db, service, CUSTOMER.user_id, 10)

    acc = account(db, CUSTOMER.user_id)
    assert (acc.balance, acc.total_earned, acc.total_used) == (100, 100, 0)


def test_debit_moves_points_to_used(db, service):
    credit(db, service, CUSTOMER.user_id, 100)
    with transaction(db):
        service.debit(CUSTOMER.user_id, 40)

    acc = account(db, CUSTOMER.user_id)
    assert (acc.balance, acc.total_earned, acc.total_used) == (60, 100, 40)


def test_debit_beyond_balance_changes_nothing(db, service):
    credit(db, service, CUSTOMER.user_id, 30)

    with pytest.raises(InsufficientPoints):
        with transaction(db):
            service.debit(CUSTOMER.user_id, 31)

    acc = account(db, CUSTOMER.user_id)
    assert (acc.balance, acc.total_used) == (30, 0)


def test_debit_without_account(db, service):
    with pytest.raises(InsufficientPoints):
        with transaction(db):
            service.debit(CUSTOMER.user_id, 1)


def test_get_account_is_created_lazily(db, service):
    result = service.get_account(CUSTOMER)
    assert (result.balance, result.total_earned, result.total_used) == (0, 0, 0)
    assert db.query(LoyaltyAccount).count() == 1

    service.get_account(CUSTOMER)
    assert db.query(LoyaltyAccount).count() == 1


def test_redeem_returns_discount_value(db, service):
    credit(db, service, CUSTOMER.user_id, 200)

    result = service.redeem(CUSTOMER, 150)

    assert result.points_used == 150
    assert result.discount_value == Decimal("1.50")
    assert result.new_balance == 50


@pytest.mark.parametrize("points", [0, -10])
def test_redeem_requires_positive_points(service, points):
    with pytest.raises(ValidationError):
        service.redeem(CUSTOMER, points)


def test_redeem_insufficient(db, service):
    credit(db, service, CUSTOMER.user_id, 10)
    with pytest.raises(InsufficientPoints):
        service.redeem(CUSTOMER, 11)
    assert account(db, CUSTOMER.user_id).balance == 10


def test_admin_adjust(db, service, caplog):
    with caplog.at_level("INFO"):
        result = service.admin_adjust(ADMIN, OTHER_CUSTOMER.user_id, 500, None)

    assert result.new_balance == 500
    assert result.reason == DEFAULT_ADJUST_REASON
    assert DEFAULT_ADJUST_REASON in caplog.text


def test_admin_adjust_requires_admin(service):
    with pytest.raises(AuthorizationError):
        service.admin_adjust(CUSTOMER, CUSTOMER.user_id, 500, "self service")


def test_admin_adjust_requires_positive_points(service):
    with pytest.raises(ValidationError):
        service.admin_adjust(ADMIN, CUSTOMER.user_id, 0, "nothing")


def test_list_accounts_by_balance(db, service):
    credit(db, service, CUSTOMER.user_id, 10)
    credit(db, service, OTHER_CUSTOMER.user_id, 250)

    accounts = service.list_accounts(ADMIN)

    assert [(a.user_name, a.balance) for a in accounts] == [("Bruno Lima", 250), ("Ana Souza", 10)]
    with pytest.raises(AuthorizationError):
        service.list_accounts(CUSTOMER)


def test_points_to_currency():
    assert points_to_currency(100) == Decimal("1.00")
    assert points_to_currency(1) == Decimal("0.01")


def test_concurrent_credits_and_debits_lose_no_update(file_engine):
    Session = sessionmaker(bind=file_engine, autoflush=False)
    with Session() as session:
        session.add(LoyaltyAccount(user_id=CUSTOMER.user_id, balance=1000, total_earned=1000, total_used=0))
        session.commit()

    errors = []

    def worker(points, repeat, operation):
        for _ in range(repeat):
            session = Session()
            try:
                with transaction(session):
                    operation(LoyaltyService(session), CUSTOMER.user_id, points)
            except Exception as e:
                errors.append(e)
            finally:
                session.close()

    threads = []
    for _ in range(4):
        threads.append(threading.Thread(target=worker, args=(3, 20, LoyaltyService.credit)))
        threads.append(threading.Thread(target=worker, args=(2, 20, LoyaltyService.debit)))
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    with Session() as session:
        acc = session.query(LoyaltyAccount).filter_by(user_id=CUSTOMER.user_id).one()
        assert (acc.balance, acc.total_earned, acc.total_used) == (1080, 1240, 160)
        assert acc.balance == acc.total_earned - acc.total_used
