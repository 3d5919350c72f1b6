"""Booking lifecycle: create, edit, pay, reschedule, delete.

Every mutation takes the ``booking:<id>`` advisory lock before reading the row
and does its read-modify-write inside it. The row is re-read with
``populate_existing`` so a writer never acts on a copy cached before the lock
was taken.
"""
import logging
import uuid
from datetime import datetime, timezone
from sqlalchemy import select, func, or_
from sqlalchemy.orm import Session, selectinload

from app.core.errors import NotFoundError, PermissionDenied, SlotConflictError, ValidationError
from app.db.session import transaction
from app.models.addon import Addon, BookingAddon
from app.models.booking import Booking
from app.models.payment import Payment
from app.models.photographer import Photographer
from app.models.reschedule import RescheduleHistory
from app.schemas.booking import AddonLineIn, BookingCreate, BookingPatch, PaymentIn
from app.services import coupon_service
from app.services.audit_service import log_audit
from app.services.file_lock import FileLock
from app.services.finance_service import OPEN_END, OPEN_START, parse_range
from app.services.normalize import (
    BookingStatus,
    SLOT_HOLDING,
    check_transition,
    normalize_booking_date,
    normalize_status,
    validate_category,
)

logger = logging.getLogger(__name__)

# API field -> column, for the scalar part of a patch
_SCALAR_FIELDS = {
    "customerName": "customer_name",
    "customerWhatsapp": "customer_whatsapp",
    "serviceId": "customer_service_id",
    "notes": "booking_notes",
    "locationLink": "booking_location_link",
    "totalPrice": "total_price",
    "servicePrice": "service_base_price",
    "baseDiscount": "base_discount",
    "addonsTotal": "addons_total",
    "couponDiscount": "coupon_discount",
    "couponCode": "coupon_code",
}
_REQUIRED_COLUMNS = {"customer_name", "customer_whatsapp", "total_price"}

_LOADERS = (
    selectinload(Booking.payments),
    selectinload(Booking.addons),
    selectinload(Booking.reschedule_history),
)


def lock_key(booking_id: str) -> str:
    return f"booking:{booking_id}"


def _load(db: Session, booking_id: str, fresh: bool = False) -> Booking:
    stmt = select(Booking).where(Booking.id == booking_id).options(*_LOADERS)
    if fresh:
        stmt = stmt.execution_options(populate_existing=True)
    booking = db.execute(stmt).scalar_one_or_none()
    if not booking:
        raise NotFoundError("Booking not found", booking_id=booking_id)
    return booking


def _ensure_mutable(booking: Booking, operation: str) -> None:
    if normalize_status(booking.status) is BookingStatus.COMPLETED:
        raise ValidationError(
            "Completed bookings cannot be modified", booking_id=booking.id, operation=operation
        )


def _payment_rows(payments: list[PaymentIn]) -> list[Payment]:
    return [
        Payment(
            date=p.date,
            amount=p.amount,
            note=p.note or "",
            proof_filename=p.proofFilename,
            proof_base64=p.proofBase64,
        )
        for p in payments
    ]


def _addon_rows(db: Session, lines: list[AddonLineIn]) -> list[BookingAddon]:
    seen: set[str] = set()
    rows = []
    for line in lines:
        if line.addonId in seen:
            raise ValidationError("Duplicate add-on in booking", addon_id=line.addonId)
        seen.add(line.addonId)
        addon = db.get(Addon, line.addonId)
        if not addon:
            raise ValidationError("Unknown add-on", addon_id=line.addonId)
        rows.append(BookingAddon(
            addon_id=addon.id,
            addon_name=addon.name,
            quantity=line.quantity,
            price_at_booking=addon.price if line.priceAtBooking is None else line.priceAtBooking,
        ))
    return rows


def _check_photographer(db: Session, photographer_id: str | None) -> None:
    if photographer_id and not db.get(Photographer, photographer_id):
        raise NotFoundError("Photographer not found", photographer_id=photographer_id)


def _pre_coupon_subtotal(data: BookingCreate) -> int:
    if data.servicePrice is not None:
        return max(data.servicePrice - (data.baseDiscount or 0) + (data.addonsTotal or 0), 0)
    return data.totalPrice + (data.couponDiscount or 0)


def create_booking(db: Session, locks: FileLock, data: BookingCreate, actor: str) -> Booking:
    category = validate_category(data.category)
    booking_date = normalize_booking_date(data.bookingDate)
    booking_id = str(uuid.uuid4())

    with locks.hold(lock_key(booking_id)):
        with transaction(db, "booking.create", booking_id=booking_id):
            _check_photographer(db, data.photographerId)
            booking = Booking(
                id=booking_id,
                status=normalize_status(data.status).value,
                customer_name=data.customerName,
                customer_whatsapp=data.customerWhatsapp.strip(),
                customer_category=category,
                customer_service_id=data.serviceId,
                booking_date=booking_date,
                booking_notes=data.notes or "",
                booking_location_link=data.locationLink or "",
                total_price=data.totalPrice,
                service_base_price=data.servicePrice,
                base_discount=data.baseDiscount,
                addons_total=data.addonsTotal,
                coupon_discount=data.couponDiscount,
                photographer_id=data.photographerId,
            )
            booking.payments = _payment_rows(data.payments)
            booking.addons = _addon_rows(db, data.addons)
            db.add(booking)
            db.flush()

            if data.couponCode:
                subtotal = _pre_coupon_subtotal(data)
                check = coupon_service.validate(db, data.couponCode, subtotal)
                if not check.valid:
                    raise ValidationError(check.error or "Invalid coupon code", coupon_code=data.couponCode)
                coupon_service.redeem(
                    db, check.coupon, booking_id, booking.customer_name, booking.customer_whatsapp,
                    check.discount_amount, subtotal,
                )
                booking.coupon_code = check.coupon.code
                booking.coupon_discount = check.discount_amount
                booking.total_price = subtotal - check.discount_amount

            log_audit(db, actor, "booking.create", "booking", booking_id, {
                "customer": booking.customer_name,
                "date": booking_date,
                "total": booking.total_price,
            })

    logger.info("booking_created", extra={"extra": {"booking_id": booking_id, "actor": actor}})
    return booking


def update_booking(db: Session, locks: FileLock, booking_id: str, data: BookingPatch, actor: str) -> Booking:
    changes = data.model_dump(exclude_unset=True)

    with locks.hold(lock_key(booking_id)):
        with transaction(db, "booking.update", booking_id=booking_id):
            booking = _load(db, booking_id, fresh=True)
            _ensure_mutable(booking, "update")

            for field, column in _SCALAR_FIELDS.items():
                if field in changes and (changes[field] is not None or column not in _REQUIRED_COLUMNS):
                    setattr(booking, column, changes[field])
            if changes.get("customerName") is not None:
                booking.customer_name = changes["customerName"].strip()
            if changes.get("category") is not None:
                booking.customer_category = validate_category(changes["category"])
            if changes.get("bookingDate") is not None:
                booking.booking_date = normalize_booking_date(changes["bookingDate"])
            if changes.get("status") is not None:
                booking.status = check_transition(booking.status, changes["status"]).value
            if "photographerId" in changes:
                _check_photographer(db, changes["photographerId"])
                booking.photographer_id = changes["photographerId"]

            # collections are replaced, not merged; flush the removals first so
            # re-adding the same add-on does not trip the (booking, addon) unique key
            if data.payments is not None or data.addons is not None:
                if data.payments is not None:
                    booking.payments.clear()
                if data.addons is not None:
                    booking.addons.clear()
                db.flush()
                if data.payments is not None:
                    booking.payments.extend(_payment_rows(data.payments))
                if data.addons is not None:
                    booking.addons.extend(_addon_rows(db, data.addons))

            log_audit(db, actor, "booking.update", "booking", booking_id, {"fields": sorted(changes)})

    logger.info("booking_updated", extra={"extra": {"booking_id": booking_id, "fields": sorted(changes)}})
    return booking


def add_payment(db: Session, locks: FileLock, booking_id: str, payment: PaymentIn, actor: str) -> Booking:
    with locks.hold(lock_key(booking_id)):
        with transaction(db, "booking.add_payment", booking_id=booking_id):
            booking = _load(db, booking_id, fresh=True)
            _ensure_mutable(booking, "add_payment")
            booking.payments.extend(_payment_rows([payment]))
            log_audit(db, actor, "booking.add_payment", "booking", booking_id, {
                "amount": payment.amount,
                "date": payment.date,
            })
    return booking


def reschedule_booking(db: Session, locks: FileLock, booking_id: str, new_date: str, reason: str | None, actor: str) -> Booking:
    target = normalize_booking_date(new_date)

    with locks.hold(lock_key(booking_id)):
        with transaction(db, "booking.reschedule", booking_id=booking_id):
            booking = _load(db, booking_id, fresh=True)
            _ensure_mutable(booking, "reschedule")
            if not is_slot_available(db, target, exclude_id=booking_id):
                raise SlotConflictError("Slot is already booked", booking_id=booking_id, booking_date=target)

            old_date = booking.booking_date
            booking.reschedule_history.append(RescheduleHistory(
                old_date=old_date,
                new_date=target,
                rescheduled_at=datetime.now(timezone.utc),
                reason=reason,
            ))
            booking.booking_date = target
            booking.status = check_transition(booking.status, BookingStatus.RESCHEDULED).value
            log_audit(db, actor, "booking.reschedule", "booking", booking_id, {
                "old_date": old_date,
                "new_date": target,
                "reason": reason,
            })

    logger.info("booking_rescheduled", extra={"extra": {"booking_id": booking_id, "new_date": target}})
    return booking


def delete_booking(db: Session, locks: FileLock, booking_id: str, actor: str, forbid_completed: bool = False) -> None:
    """Hard delete. Payments, add-on lines, history and coupon usage go with it.

    With ``forbid_completed`` the status is checked under the booking lock, so a
    booking completed by a concurrent writer is never removed.
    """
    with locks.hold(lock_key(booking_id)):
        with transaction(db, "booking.delete", booking_id=booking_id):
            booking = _load(db, booking_id, fresh=True)
            if forbid_completed and normalize_status(booking.status) is BookingStatus.COMPLETED:
                raise PermissionDenied("Completed bookings cannot be deleted", booking_id=booking_id)
            details = {"customer": booking.customer_name, "date": booking.booking_date, "status": booking.status}
            db.delete(booking)
            log_audit(db, actor, "booking.delete", "booking", booking_id, details)

    logger.info("booking_deleted", extra={"extra": {"booking_id": booking_id, "actor": actor}})


def set_status(db: Session, locks: FileLock, booking_id: str, status: str, actor: str) -> Booking:
    with locks.hold(lock_key(booking_id)):
        with transaction(db, "booking.set_status", booking_id=booking_id):
            booking = _load(db, booking_id, fresh=True)
            previous = booking.status
            booking.status = check_transition(previous, status).value
            log_audit(db, actor, "booking.set_status", "booking", booking_id, {
                "from": previous,
                "to": booking.status,
            })
    return booking


def assign_photographer(db: Session, locks: FileLock, booking_id: str, photographer_id: str | None, actor: str) -> Booking:
    with locks.hold(lock_key(booking_id)):
        with transaction(db, "booking.assign_photographer", booking_id=booking_id):
            booking = _load(db, booking_id, fresh=True)
            _ensure_mutable(booking, "assign_photographer")
            _check_photographer(db, photographer_id)
            booking.photographer_id = photographer_id
            log_audit(db, actor, "booking.assign_photographer", "booking", booking_id, {
                "photographer_id": photographer_id,
            })
    return booking


def get_booking(db: Session, booking_id: str) -> Booking:
    return _load(db, booking_id)


def _distance_from_now(booking_date: str, now: datetime) -> float:
    try:
        when = datetime.fromisoformat(booking_date)
    except ValueError:
        return float("inf")
    return abs((when - now).total_seconds())


def list_bookings(
    db: Session,
    start_date: str | None = None,
    end_date: str | None = None,
    status: str | None = None,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[Booking], int]:
    """Filtered page of bookings, closest session date to now first."""
    stmt = select(Booking).options(*_LOADERS)
    if start_date or end_date:
        lo, hi = parse_range(start_date or OPEN_START, end_date or OPEN_END)
        stmt = stmt.where(Booking.booking_date >= lo, Booking.booking_date < hi)
    if status:
        stmt = stmt.where(Booking.status == normalize_status(status).value)

    rows = list(db.execute(stmt).scalars().all())
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    rows.sort(key=lambda b: _distance_from_now(b.booking_date, now))

    page = max(page, 1)
    limit = min(max(limit, 1), 500)
    offset = (page - 1) * limit
    return rows[offset:offset + limit], len(rows)


def search_bookings(db: Session, query: str, limit: int = 50) -> list[Booking]:
    q = (query or "").strip()
    if not q:
        return []
    like = f"%{q}%"
    stmt = (
        select(Booking)
        .options(*_LOADERS)
        .where(or_(Booking.customer_name.ilike(like), Booking.customer_whatsapp.ilike(like)))
        .order_by(Booking.booking_date.desc())
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())


def is_slot_available(db: Session, booking_date: str, exclude_id: str | None = None) -> bool:
    key = normalize_booking_date(booking_date)
    stmt = select(func.count()).select_from(Booking).where(
        Booking.booking_date == key,
        Booking.status.in_(SLOT_HOLDING),
    )
    if exclude_id:
        stmt = stmt.where(Booking.id != exclude_id)
    return db.execute(stmt).scalar_one() == 0
