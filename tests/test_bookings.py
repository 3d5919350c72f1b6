import json
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select, update

from app.core.errors import LockTimeoutError, NotFoundError, PermissionDenied, SlotConflictError, ValidationError
from app.models.addon import Addon, BookingAddon
from app.models.audit_log import AuditLog
from app.models.booking import Booking
from app.models.coupon import Coupon, CouponUsage
from app.models.payment import Payment
from app.models.reschedule import RescheduleHistory
from app.schemas.booking import AddonLineIn, BookingPatch, PaymentIn
from app.schemas.catalog import AddonIn, AddonPatch, PhotographerIn
from app.services import booking_service, catalog_service
from app.services.finance_service import calculate_finance, get_or_reconstruct_breakdown


def _addon(db, name="Printed album", price=450_000):
    return catalog_service.create_addon(db, AddonIn(name=name, price=price), actor="owner")


def _count(db, model, booking_id):
    return db.execute(select(func.count()).select_from(model).where(model.booking_id == booking_id)).scalar_one()


def test_create_persists_payments_and_addon_snapshots(db, locks, draft):
    album = _addon(db)
    booking = booking_service.create_booking(db, locks, draft(
        bookingDate="2026-11-01 10:00:00",
        payments=[PaymentIn(date="2026-10-01", amount=400_000, note="DP")],
        addons=[AddonLineIn(addonId=album.id, quantity=2)],
    ), actor="desk")

    loaded = booking_service.get_booking(db, booking.id)
    assert loaded.status == "Active"
    assert loaded.booking_date == "2026-11-01T10:00"
    assert [(p.amount, p.note) for p in loaded.payments] == [(400_000, "DP")]
    assert [(a.addon_name, a.quantity, a.price_at_booking) for a in loaded.addons] == [("Printed album", 2, 450_000)]
    assert get_or_reconstruct_breakdown(loaded).addons_total == 900_000
    assert calculate_finance(loaded).balance == 600_000
    assert not locks.status(booking_service.lock_key(booking.id))["locked"]

    audit = db.execute(select(AuditLog).where(AuditLog.entity_id == booking.id)).scalar_one()
    assert audit.action == "booking.create"
    assert audit.actor == "desk"


def test_catalog_price_change_keeps_snapshot(db, locks, draft):
    album = _addon(db)
    booking = booking_service.create_booking(db, locks, draft(addons=[AddonLineIn(addonId=album.id)]), actor="desk")
    catalog_service.update_addon(db, album.id, AddonPatch(price=999_000, name="Album deluxe"), actor="owner")

    db.expire_all()
    line = booking_service.get_booking(db, booking.id).addons[0]
    assert line.price_at_booking == 450_000
    assert line.addon_name == "Printed album"


def test_create_rejects_unknown_category_and_addon(db, locks, draft):
    with pytest.raises(ValidationError):
        booking_service.create_booking(db, locks, draft(category="Underwater"), actor="desk")
    with pytest.raises(ValidationError):
        booking_service.create_booking(db, locks, draft(addons=[AddonLineIn(addonId="missing")]), actor="desk")
    assert booking_service.list_bookings(db)[1] == 0


def test_create_fails_when_lock_is_held(db, tmp_path, draft, monkeypatch):
    from app.services.file_lock import FileLock

    locks = FileLock(str(tmp_path / "held"), timeout_ms=50, poll_interval_ms=10)
    fixed = uuid.UUID("00000000-0000-0000-0000-0000000000aa")
    monkeypatch.setattr("app.services.booking_service.uuid.uuid4", lambda: fixed)
    assert locks.acquire(booking_service.lock_key(str(fixed)))

    with pytest.raises(LockTimeoutError):
        booking_service.create_booking(db, locks, draft(), actor="desk")
    assert db.get(Booking, str(fixed)) is None


def test_update_merges_scalars_and_replaces_collections(db, locks, draft):
    album = _addon(db)
    extra = _addon(db, name="Extra hour", price=300_000)
    booking = booking_service.create_booking(db, locks, draft(
        payments=[PaymentIn(date="2026-10-01", amount=100_000), PaymentIn(date="2026-10-02", amount=200_000)],
        addons=[AddonLineIn(addonId=album.id)],
    ), actor="desk")

    booking_service.update_booking(db, locks, booking.id, BookingPatch(
        notes="Bring props",
        payments=[PaymentIn(date="2026-10-05", amount=500_000)],
        addons=[AddonLineIn(addonId=album.id, quantity=3), AddonLineIn(addonId=extra.id)],
    ), actor="desk")

    db.expire_all()
    loaded = booking_service.get_booking(db, booking.id)
    assert loaded.booking_notes == "Bring props"
    assert loaded.customer_name == "Dewi Lestari"
    assert [p.amount for p in loaded.payments] == [500_000]
    assert sorted((a.addon_name, a.quantity) for a in loaded.addons) == [("Extra hour", 1), ("Printed album", 3)]
    assert _count(db, Payment, booking.id) == 1

    entry = db.execute(
        select(AuditLog).where(AuditLog.entity_id == booking.id, AuditLog.action == "booking.update")
    ).scalar_one()
    assert json.loads(entry.details_json)["fields"] == ["addons", "notes", "payments"]


def test_add_payment_reaches_paid_off(db, locks, draft):
    booking = booking_service.create_booking(db, locks, draft(payments=[PaymentIn(date="2026-10-01", amount=400_000)]), actor="desk")
    assert calculate_finance(booking).is_paid_off is False

    booking = booking_service.add_payment(db, locks, booking.id, PaymentIn(date="2026-10-20", amount=600_000), actor="desk")
    snap = calculate_finance(booking)
    assert snap.balance == 0
    assert snap.is_paid_off is True
    assert [p.amount for p in booking.payments] == [400_000, 600_000]


def test_completed_booking_is_immutable(db, locks, draft):
    booking = booking_service.create_booking(db, locks, draft(), actor="desk")
    booking_service.set_status(db, locks, booking.id, "completed", actor="desk")

    with pytest.raises(ValidationError):
        booking_service.update_booking(db, locks, booking.id, BookingPatch(notes="late edit"), actor="desk")
    with pytest.raises(ValidationError):
        booking_service.add_payment(db, locks, booking.id, PaymentIn(date="2026-11-02", amount=1), actor="desk")
    with pytest.raises(ValidationError):
        booking_service.reschedule_booking(db, locks, booking.id, "2026-12-01T10:00", None, actor="desk")
    with pytest.raises(ValidationError):
        booking_service.set_status(db, locks, booking.id, "Active", actor="desk")
    assert booking_service.get_booking(db, booking.id).status == "Completed"


def test_set_status_normalizes_canceled(db, locks, draft):
    booking = booking_service.create_booking(db, locks, draft(), actor="desk")
    assert booking_service.set_status(db, locks, booking.id, " Canceled ", actor="desk").status == "Cancelled"


def test_reschedule_appends_history(db, locks, draft):
    booking = booking_service.create_booking(db, locks, draft(bookingDate="2026-11-01T10:00"), actor="desk")

    booking_service.reschedule_booking(db, locks, booking.id, "2026-11-03T10:00", "rain", actor="desk")
    booking_service.reschedule_booking(db, locks, booking.id, "2026-11-05T13:00", None, actor="desk")

    db.expire_all()
    loaded = booking_service.get_booking(db, booking.id)
    assert loaded.status == "Rescheduled"
    assert loaded.booking_date == "2026-11-05T13:00"
    assert [(h.old_date, h.new_date, h.reason) for h in loaded.reschedule_history] == [
        ("2026-11-01T10:00", "2026-11-03T10:00", "rain"),
        ("2026-11-03T10:00", "2026-11-05T13:00", None),
    ]


def test_reschedule_into_taken_slot_conflicts(db, locks, draft):
    booking_service.create_booking(db, locks, draft(bookingDate="2026-11-01T10:00"), actor="desk")
    other = booking_service.create_booking(db, locks, draft(customerName="Rina", bookingDate="2026-11-01T11:00"), actor="desk")

    with pytest.raises(SlotConflictError):
        booking_service.reschedule_booking(db, locks, other.id, "2026-11-01T10:00", None, actor="desk")

    db.expire_all()
    loaded = booking_service.get_booking(db, other.id)
    assert loaded.booking_date == "2026-11-01T11:00"
    assert loaded.reschedule_history == []


def test_slot_availability_ignores_cancelled_and_self(db, locks, draft):
    first = booking_service.create_booking(db, locks, draft(bookingDate="2026-11-01T10:00"), actor="desk")
    assert booking_service.is_slot_available(db, "2026-11-01T10:00") is False
    assert booking_service.is_slot_available(db, "2026-11-01T10:00", exclude_id=first.id) is True
    assert booking_service.is_slot_available(db, "2026-11-01T10:30") is True

    booking_service.set_status(db, locks, first.id, "Cancelled", actor="desk")
    assert booking_service.is_slot_available(db, "2026-11-01T10:00") is True


def test_delete_cascades_to_children(db, locks, draft):
    album = _addon(db)
    db.add(Coupon(id=str(uuid.uuid4()), code="DEL10", discount_type="fixed", discount_value=10_000, usage_count=0, is_active=True))
    db.commit()
    booking = booking_service.create_booking(db, locks, draft(
        payments=[PaymentIn(date="2026-10-01", amount=100_000)],
        addons=[AddonLineIn(addonId=album.id)],
        couponCode="DEL10",
    ), actor="desk")
    booking_service.reschedule_booking(db, locks, booking.id, "2026-11-09T10:00", None, actor="desk")

    booking_service.delete_booking(db, locks, booking.id, actor="owner")

    assert db.get(Booking, booking.id) is None
    for model in (Payment, BookingAddon, RescheduleHistory, CouponUsage):
        assert _count(db, model, booking.id) == 0
    with pytest.raises(NotFoundError):
        booking_service.get_booking(db, booking.id)


def test_delete_rechecks_completed_status_under_lock(db, locks, draft):
    booking = booking_service.create_booking(db, locks, draft(), actor="desk")
    stale = booking_service.get_booking(db, booking.id)
    assert stale.status == "Active"

    # completed by another writer after our copy was read
    db.execute(
        update(Booking).where(Booking.id == booking.id).values(status="Completed")
        .execution_options(synchronize_session=False)
    )
    db.commit()
    assert stale.status == "Active"

    with pytest.raises(PermissionDenied):
        booking_service.delete_booking(db, locks, booking.id, actor="desk", forbid_completed=True)
    db.expire_all()
    assert booking_service.get_booking(db, booking.id).status == "Completed"

    # without the flag the service still hard-deletes
    booking_service.delete_booking(db, locks, booking.id, actor="owner")
    assert db.get(Booking, booking.id) is None


def test_assign_and_delete_photographer(db, locks, draft):
    p = catalog_service.create_photographer(db, PhotographerIn(name="Budi"), actor="owner")
    booking = booking_service.create_booking(db, locks, draft(), actor="desk")

    with pytest.raises(NotFoundError):
        booking_service.assign_photographer(db, locks, booking.id, "nobody", actor="desk")
    booking_service.assign_photographer(db, locks, booking.id, p.id, actor="desk")
    assert booking_service.get_booking(db, booking.id).photographer_id == p.id

    catalog_service.delete_photographer(db, p.id, actor="owner")
    db.expire_all()
    assert booking_service.get_booking(db, booking.id).photographer_id is None


def test_delete_addon_removes_booking_lines(db, locks, draft):
    album = _addon(db)
    booking = booking_service.create_booking(db, locks, draft(addons=[AddonLineIn(addonId=album.id)]), actor="desk")

    catalog_service.delete_addon(db, album.id, actor="owner")
    db.expire_all()
    assert booking_service.get_booking(db, booking.id).addons == []
    assert db.get(Addon, album.id) is None


def test_list_filters_and_orders_by_distance_from_now(db, locks, draft):
    now = datetime.now(timezone.utc)
    soon = booking_service.create_booking(db, locks, draft(bookingDate=(now + timedelta(days=1)).strftime("%Y-%m-%dT%H:%M")), actor="desk")
    past = booking_service.create_booking(db, locks, draft(customerName="Rina", bookingDate=(now - timedelta(days=3)).strftime("%Y-%m-%dT%H:%M")), actor="desk")
    later = booking_service.create_booking(db, locks, draft(customerName="Agus", bookingDate=(now + timedelta(days=10)).strftime("%Y-%m-%dT%H:%M")), actor="desk")
    booking_service.set_status(db, locks, later.id, "Canceled", actor="desk")

    items, total = booking_service.list_bookings(db)
    assert total == 3
    assert [b.id for b in items] == [soon.id, past.id, later.id]

    items, total = booking_service.list_bookings(db, status="canceled")
    assert [b.id for b in items] == [later.id]

    items, total = booking_service.list_bookings(db, page=2, limit=2)
    assert total == 3
    assert [b.id for b in items] == [later.id]

    day = (now + timedelta(days=1)).date().isoformat()
    items, _ = booking_service.list_bookings(db, start_date=day, end_date=day)
    assert [b.id for b in items] == [soon.id]


def test_search_by_name_or_whatsapp(db, locks, draft):
    dewi = booking_service.create_booking(db, locks, draft(), actor="desk")
    booking_service.create_booking(db, locks, draft(customerName="Rina", customerWhatsapp="+62 811 0000 111"), actor="desk")

    assert [b.id for b in booking_service.search_bookings(db, "dewi")] == [dewi.id]
    assert [b.id for b in booking_service.search_bookings(db, "4567")] == [dewi.id]
    assert booking_service.search_bookings(db, "   ") == []
