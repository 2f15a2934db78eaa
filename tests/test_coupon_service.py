"""
Tests for coupon validation, redemption and administration
"""
import threading
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker

from conftest import ADMIN, CUSTOMER, OTHER_CUSTOMER
from ordering.database import transaction
from ordering.exceptions import (
    AuthorizationError,
    CouponAlreadyExists,
    CouponExpired,
    CouponNotFound,
    CouponNotYetValid,
    CouponUsageLimitReached,
    CouponUserLimitReached,
    MinimumOrderValueNotMet,
    ValidationError,
)
from ordering.models import Coupon, UserCoupon
from ordering.repositories.coupon_repository import CouponRepository
from ordering.schemas.coupon import CouponCreate, CouponUpdate
from ordering.services.coupon_service import CouponService, calculate_discount
from ordering.timeutils import utcnow


@pytest.fixture
def service(db, users):
    return CouponService(db)


def redeem(db, service, coupon, user_id, order_id):
    with transaction(db):
        service.redeem(coupon, user_id, order_id)


class TestValidate:

    def test_percentage_discount(self, service, make_coupon):
        make_coupon(code="SAVE10", discount_value=Decimal("10"))
        quote = service.validate("save10", CUSTOMER.user_id, Decimal("100.00"))
        assert quote.discount == Decimal("10.00")
        assert quote.coupon.code == "SAVE10"

    def test_percentage_rounds_half_up_to_cents(self, service, make_coupon):
        make_coupon(code="FIFTEEN", discount_value=Decimal("15"))
        quote = service.validate("FIFTEEN", CUSTOMER.user_id, Decimal("33.33"))
        assert quote.discount == Decimal("5.00")

    def test_fixed_discount_capped_at_subtotal(self, service, make_coupon):
        make_coupon(code="FIFTY", discount_type="fixed", discount_value=Decimal("50"))
        quote = service.validate("FIFTY", CUSTOMER.user_id, Decimal("30.00"))
        assert quote.discount == Decimal("30.00")

    def test_unknown_code(self, service):
        with pytest.raises(CouponNotFound):
            service.validate("NOPE", CUSTOMER.user_id, Decimal("10"))

    def test_inactive_coupon_is_not_found(self, service, make_coupon):
        make_coupon(code="OFF", is_active=False)
        with pytest.raises(CouponNotFound):
            service.validate("OFF", CUSTOMER.user_id, Decimal("10"))

    def test_not_yet_valid(self, service, make_coupon):
        make_coupon(code="SOON", valid_from=utcnow() + timedelta(days=2))
        with pytest.raises(CouponNotYetValid):
            service.validate("SOON", CUSTOMER.user_id, Decimal("10"))

    def test_expired_is_reported_before_minimum_value(self, service, make_coupon):
        make_coupon(
            code="OLD",
            valid_until=utcnow() - timedelta(days=1),
            min_order_value=Decimal("500"),
        )
        with pytest.raises(CouponExpired):
            service.validate("OLD", CUSTOMER.user_id, Decimal("10"))

    def test_minimum_order_value(self, service, make_coupon):
        make_coupon(code="BIG", min_order_value=Decimal("80"))
        with pytest.raises(MinimumOrderValueNotMet) as exc_info:
            service.validate("BIG", CUSTOMER.user_id, Decimal("79.99"))
        assert "80.00" in exc_info.value.message

    def test_usage_limit_reached(self, service, make_coupon):
        make_coupon(code="GONE", usage_limit=5, usage_count=5)
        with pytest.raises(CouponUsageLimitReached):
            service.validate("GONE", CUSTOMER.user_id, Decimal("10"))

    def test_per_user_limit(self, db, service, make_coupon):
        coupon = make_coupon(code="TWICE", usage_per_user=2)
        redeem(db, service, coupon, CUSTOMER.user_id, 1)
        redeem(db, service, coupon, CUSTOMER.user_id, 2)

        with pytest.raises(CouponUserLimitReached):
            service.validate("TWICE", CUSTOMER.user_id, Decimal("10"))
        assert service.validate("TWICE", OTHER_CUSTOMER.user_id, Decimal("10")).discount == Decimal("1.00")

    def test_without_subtotal_skips_minimum(self, service, make_coupon):
        make_coupon(code="BIG", min_order_value=Decimal("80"))
        assert service.validate("BIG", CUSTOMER.user_id, None).discount == Decimal("0.00")


class TestRedeem:

    def test_redeem_records_usage(self, db, service, make_coupon):
        coupon = make_coupon(code="SAVE10")
        redeem(db, service, coupon, CUSTOMER.user_id, 10)

        assert db.get(Coupon, coupon.id).usage_count == 1
        assert db.query(UserCoupon).filter_by(coupon_id=coupon.id, user_id=CUSTOMER.user_id).count() == 1

    def test_last_redemption_wins_once(self, db, service, make_coupon):
        coupon = make_coupon(code="LAST", usage_limit=1)
        redeem(db, service, coupon, CUSTOMER.user_id, 10)

        with pytest.raises(CouponUsageLimitReached):
            redeem(db, service, coupon, OTHER_CUSTOMER.user_id, 11)

        db.expire_all()
        assert db.get(Coupon, coupon.id).usage_count == 1
        assert db.query(UserCoupon).count() == 1

    def test_conditional_increment_stops_at_limit(self, db, make_coupon):
        coupon = make_coupon(code="TWO", usage_limit=2)
        repository = CouponRepository(db)

        results = [repository.increment_usage(coupon.id) for _ in range(4)]
        db.commit()

        assert results == [True, True, False, False]
        assert db.get(Coupon, coupon.id).usage_count == 2

    def test_user_limit_rechecked_on_redeem(self, db, service, make_coupon):
        coupon = make_coupon(code="ONCE", usage_per_user=1)
        redeem(db, service, coupon, CUSTOMER.user_id, 10)

        with pytest.raises(CouponUserLimitReached):
            redeem(db, service, coupon, CUSTOMER.user_id, 11)

        db.expire_all()
        assert db.get(Coupon, coupon.id).usage_count == 1


class TestCheck:

    def test_valid_coupon(self, service, make_coupon):
        make_coupon(code="SAVE10", description="10% off")
        result = service.check(CUSTOMER, "save10", Decimal("50"))
        assert result.valid is True
        assert result.discount == Decimal("5.00")
        assert result.coupon.code == "SAVE10"

    def test_rule_violation_is_reported_not_raised(self, service, make_coupon):
        make_coupon(code="OLD", valid_until=utcnow() - timedelta(hours=1))
        result = service.check(CUSTOMER, "OLD", Decimal("50"))
        assert result.valid is False
        assert result.error == "coupon_expired"
        assert result.coupon is None

    def test_unknown_code_raises(self, service):
        with pytest.raises(CouponNotFound):
            service.check(CUSTOMER, "NOPE", None)


class TestAdmin:

    def test_create_coupon(self, service):
        coupon = service.create_coupon(ADMIN, CouponCreate(
            code=" welcome ",
            description="Welcome bonus",
            discount_type="fixed",
            discount_value=Decimal("15"),
            usage_limit=100,
        ))
        assert coupon.code == "WELCOME"
        assert coupon.usage_count == 0
        assert coupon.is_active is True

    def test_create_requires_admin(self, service):
        with pytest.raises(AuthorizationError):
            service.create_coupon(CUSTOMER, CouponCreate(
                code="X", description="x", discount_value=Decimal("5")
            ))

    def test_duplicate_code(self, service, make_coupon):
        make_coupon(code="SAVE10")
        with pytest.raises(CouponAlreadyExists):
            service.create_coupon(ADMIN, CouponCreate(
                code="Save10", description="again", discount_value=Decimal("5")
            ))

    def test_invalid_discount(self, service):
        with pytest.raises(ValidationError):
            service.create_coupon(ADMIN, CouponCreate(
                code="HUGE", description="too much", discount_value=Decimal("150")
            ))
        with pytest.raises(ValidationError):
            service.create_coupon(ADMIN, CouponCreate(
                code="ODD", description="odd", discount_type="bogus", discount_value=Decimal("5")
            ))

    def test_update_coupon(self, service, make_coupon):
        coupon = make_coupon(code="SAVE10")
        updated = service.update_coupon(ADMIN, coupon.id, CouponUpdate(description="Updated", usage_limit=10))
        assert updated.description == "Updated"
        assert updated.usage_limit == 10
        assert updated.discount_value == Decimal("10")

    def test_usage_limit_cannot_drop_below_usage(self, service, make_coupon):
        coupon = make_coupon(code="USED", usage_count=3)
        with pytest.raises(ValidationError):
            service.update_coupon(ADMIN, coupon.id, CouponUpdate(usage_limit=2))

    def test_deactivate(self, service, make_coupon):
        coupon = make_coupon(code="SAVE10")

        result = service.deactivate_coupon(ADMIN, coupon.id)

        assert result.is_active is False
        with pytest.raises(CouponNotFound):
            service.validate("SAVE10", CUSTOMER.user_id, Decimal("10"))

    def test_missing_coupon(self, service):
        with pytest.raises(CouponNotFound):
            service.get_coupon(999)

    def test_customers_only_list_usable_coupons(self, service, make_coupon):
        make_coupon(code="LIVE")
        make_coupon(code="OFF", is_active=False)
        make_coupon(code="OLD", valid_until=utcnow() - timedelta(days=1))

        assert {c.code for c in service.list_coupons(CUSTOMER)} == {"LIVE"}
        assert {c.code for c in service.list_coupons(ADMIN)} == {"LIVE", "OFF", "OLD"}
        assert {c.code for c in service.list_coupons(ADMIN, active_only=True)} == {"LIVE", "OLD"}

    def test_statistics(self, db, service, make_coupon):
        coupon = make_coupon(code="STATS", usage_per_user=5, usage_limit=50)
        redeem(db, service, coupon, CUSTOMER.user_id, 10)
        redeem(db, service, coupon, OTHER_CUSTOMER.user_id, 11)

        stats = service.statistics(ADMIN, coupon.id)

        assert stats.total_uses == 2
        assert stats.limit == 50
        assert {u.name for u in stats.users} == {"Ana Souza", "Bruno Lima"}

        with pytest.raises(AuthorizationError):
            service.statistics(CUSTOMER, coupon.id)


def test_calculate_discount_never_exceeds_subtotal():
    coupon = Coupon(discount_type="percentage", discount_value=Decimal("100"))
    assert calculate_discount(coupon, Decimal("42.10")) == Decimal("42.10")


def test_concurrent_redemptions_respect_usage_limit(file_engine):
    Session = sessionmaker(bind=file_engine, autoflush=False)
    with Session() as session:
        coupon = Coupon(code="RUSH", description="First three only",
                        discount_value=Decimal("10"), usage_limit=3)
        session.add(coupon)
        session.commit()
        coupon_id = coupon.id

    redeemed = []
    rejected = []
    errors = []
    lock = threading.Lock()

    def worker(user_id):
        session = Session()
        try:
            with transaction(session):
                CouponService(session).redeem(session.get(Coupon, coupon_id), user_id, 1000 + user_id)
            with lock:
                redeemed.append(user_id)
        except CouponUsageLimitReached:
            with lock:
                rejected.append(user_id)
        except Exception as e:
            errors.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=worker, args=(user_id,)) for user_id in range(1, 11)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert len(redeemed) == 3
    assert len(rejected) == 7
    with Session() as session:
        assert session.get(Coupon, coupon_id).usage_count == 3
        assert session.query(UserCoupon).count() == 3
