import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from app.core.errors import ValidationError
from app.models.coupon import Coupon, CouponUsage
from app.schemas.coupon import CouponIn, CouponPatch
from app.services import booking_service, coupon_service


def _coupon(db, code="PROMO20", **fields):
    values = {
        "id": str(uuid.uuid4()),
        "code": code,
        "discount_type": "percentage",
        "discount_value": 20,
        "usage_count": 0,
        "is_active": True,
    }
    values.update(fields)
    c = Coupon(**values)
    db.add(c)
    db.commit()
    return c


def test_percentage_discount_is_clamped_to_max(db):
    _coupon(db, max_discount=100_000)
    check = coupon_service.validate(db, "PROMO20", 1_000_000)
    assert check.valid is True
    assert check.discount_amount == 100_000


def test_percentage_discount_without_cap(db):
    _coupon(db)
    assert coupon_service.validate(db, "promo20", 250_000).discount_amount == 50_000


def test_fixed_discount_never_exceeds_total(db):
    _coupon(db, code="FLAT", discount_type="fixed", discount_value=75_000)
    assert coupon_service.validate(db, "flat", 50_000).discount_amount == 50_000
    assert coupon_service.validate(db, "FLAT", 200_000).discount_amount == 75_000


def test_discount_is_rounded(db):
    _coupon(db, code="ODD", discount_value=12.5)
    assert coupon_service.validate(db, "ODD", 1_001).discount_amount == 125


def test_lookup_is_case_insensitive_and_ignores_inactive(db):
    _coupon(db, code="OFF", is_active=False)
    check = coupon_service.validate(db, "off", 100_000)
    assert check.valid is False
    assert check.error == "Invalid coupon code"


def test_validity_window(db):
    now = datetime.now(timezone.utc)
    _coupon(db, code="LATER", valid_from=now + timedelta(days=2))
    _coupon(db, code="GONE", valid_until=now - timedelta(days=1))
    _coupon(db, code="NOW", valid_from=now - timedelta(days=1), valid_until=now + timedelta(days=1))

    assert coupon_service.validate(db, "LATER", 100_000).error == "Coupon is not valid yet"
    assert coupon_service.validate(db, "GONE", 100_000).error == "Coupon has expired"
    assert coupon_service.validate(db, "NOW", 100_000).valid is True


def test_usage_limit_and_min_purchase(db):
    _coupon(db, code="USED", usage_limit=2, usage_count=2)
    _coupon(db, code="BIG", min_purchase=500_000)

    assert coupon_service.validate(db, "USED", 100_000).error == "Coupon usage limit reached"
    check = coupon_service.validate(db, "BIG", 499_999)
    assert check.valid is False
    assert "500000" in check.error
    assert coupon_service.validate(db, "BIG", 500_000).valid is True


def test_redeem_is_conditional_on_the_cap(db, locks, draft):
    coupon = _coupon(db, code="ONCE", usage_limit=1)
    booking = booking_service.create_booking(db, locks, draft(), actor="desk")

    coupon_service.redeem(db, coupon, booking.id, "Dewi", "081234567890", 10_000, 100_000)
    db.commit()
    with pytest.raises(ValidationError):
        coupon_service.redeem(db, coupon, booking.id, "Dewi", "081234567890", 10_000, 100_000)
    db.rollback()

    db.refresh(coupon)
    assert coupon.usage_count == 1
    assert len(db.execute(select(CouponUsage)).scalars().all()) == 1


def test_record_usage_appends_and_counts(db, locks, draft):
    coupon = _coupon(db, code="LOG")
    booking = booking_service.create_booking(db, locks, draft(), actor="desk")
    coupon_service.record_usage(db, coupon.id, booking.id, "Dewi", "081234567890", 5_000, 50_000)

    history = coupon_service.usage_history(db, coupon.id)
    assert len(history) == 1
    usage, code = history[0]
    assert code == "LOG"
    assert usage.discount_amount == 5_000
    assert db.get(Coupon, coupon.id).usage_count == 1


def test_booking_create_redeems_coupon(db, locks, draft):
    coupon = _coupon(db, code="WED20", max_discount=100_000)
    booking = booking_service.create_booking(db, locks, draft(
        category="Wedding", servicePrice=1_000_000, baseDiscount=0, addonsTotal=0, couponCode="wed20",
    ), actor="desk")

    assert booking.coupon_code == "WED20"
    assert booking.coupon_discount == 100_000
    assert booking.total_price == 900_000
    db.refresh(coupon)
    assert coupon.usage_count == 1
    usage = db.execute(select(CouponUsage).where(CouponUsage.booking_id == booking.id)).scalar_one()
    assert usage.order_total == 1_000_000


def test_booking_create_with_invalid_coupon_saves_nothing(db, locks, draft):
    _coupon(db, code="MAXED", usage_limit=1, usage_count=1)
    with pytest.raises(ValidationError):
        booking_service.create_booking(db, locks, draft(couponCode="MAXED"), actor="desk")
    assert booking_service.list_bookings(db)[1] == 0


def test_suggestions_top_three_usable(db):
    now = datetime.now(timezone.utc)
    _coupon(db, code="A", discount_type="fixed", discount_value=10_000)
    _coupon(db, code="B", discount_type="fixed", discount_value=50_000)
    _coupon(db, code="C", discount_type="fixed", discount_value=30_000)
    _coupon(db, code="D", discount_type="fixed", discount_value=40_000)
    _coupon(db, code="E", discount_type="fixed", discount_value=90_000, min_purchase=2_000_000)
    _coupon(db, code="F", discount_type="fixed", discount_value=80_000, valid_until=now - timedelta(days=1))
    _coupon(db, code="G", discount_type="fixed", discount_value=70_000, usage_limit=1, usage_count=1)

    assert [c.code for c in coupon_service.suggestions(db, 500_000)] == ["B", "D", "C"]


def test_coupon_admin_crud(db):
    c = coupon_service.create_coupon(db, CouponIn(code=" lebaran ", discountType="fixed", discountValue=25_000), actor="owner")
    assert c.code == "LEBARAN"
    with pytest.raises(ValidationError):
        coupon_service.create_coupon(db, CouponIn(code="Lebaran", discountType="fixed", discountValue=1), actor="owner")
    with pytest.raises(ValidationError):
        coupon_service.create_coupon(db, CouponIn(code="HUGE", discountType="percentage", discountValue=150), actor="owner")

    updated = coupon_service.update_coupon(db, c.id, CouponPatch(isActive=False, code="idul"), actor="owner")
    assert updated.code == "IDUL"
    assert updated.is_active is False
    assert [x.code for x in coupon_service.list_coupons(db, active_only=True)] == []

    coupon_service.delete_coupon(db, c.id, actor="owner")
    assert coupon_service.list_coupons(db) == []


def test_coupon_update_treats_null_as_unchanged(db):
    c = coupon_service.create_coupon(db, CouponIn(
        code="RAMADAN", discountType="percentage", discountValue=15, maxDiscount=75_000, usageLimit=10,
    ), actor="owner")

    for patch in (CouponPatch(discountValue=None), CouponPatch(discountType=None), CouponPatch(isActive=None)):
        coupon_service.update_coupon(db, c.id, patch, actor="owner")

    db.expire_all()
    fresh = coupon_service.get_coupon(db, c.id)
    assert fresh.discount_type == "percentage"
    assert fresh.discount_value == 15
    assert fresh.is_active is True

    # nullable limits can still be cleared explicitly
    cleared = coupon_service.update_coupon(db, c.id, CouponPatch(maxDiscount=None, usageLimit=None), actor="owner")
    assert cleared.max_discount is None
    assert cleared.usage_limit is None
