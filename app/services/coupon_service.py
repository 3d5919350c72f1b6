import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from sqlalchemy import select, update, func, or_
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, ValidationError
from app.db.session import transaction
from app.models.coupon import Coupon, CouponUsage
from app.schemas.coupon import CouponIn, CouponPatch
from app.services.audit_service import log_audit

logger = logging.getLogger(__name__)

SUGGESTION_LIMIT = 3


@dataclass
class CouponCheck:
    valid: bool
    coupon: Coupon | None = None
    discount_amount: int = 0
    error: str | None = None


def _aware(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _round(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_discount(coupon: Coupon, order_total: int) -> int:
    if coupon.discount_type == "percentage":
        discount = order_total * float(coupon.discount_value) / 100
        if coupon.max_discount:
            discount = min(discount, coupon.max_discount)
    else:
        discount = float(coupon.discount_value)
    return max(0, min(_round(discount), order_total))


def _usable_error(coupon: Coupon, order_total: int, now: datetime) -> str | None:
    valid_from = _aware(coupon.valid_from)
    valid_until = _aware(coupon.valid_until)
    if valid_from and valid_from > now:
        return "Coupon is not valid yet"
    if valid_until and valid_until < now:
        return "Coupon has expired"
    if coupon.usage_limit and coupon.usage_count >= coupon.usage_limit:
        return "Coupon usage limit reached"
    if coupon.min_purchase and order_total < coupon.min_purchase:
        return f"Minimum purchase is {coupon.min_purchase}"
    return None


def find_active(db: Session, code: str) -> Coupon | None:
    key = (code or "").strip().upper()
    if not key:
        return None
    return db.execute(
        select(Coupon).where(func.upper(Coupon.code) == key, Coupon.is_active.is_(True))
    ).scalar_one_or_none()


def validate(db: Session, code: str, order_total: int, now: datetime | None = None) -> CouponCheck:
    """Check a code against an order total. Never raises for business failures."""
    now = now or datetime.now(timezone.utc)
    coupon = find_active(db, code)
    if coupon is None:
        return CouponCheck(valid=False, error="Invalid coupon code")
    error = _usable_error(coupon, order_total, now)
    if error:
        return CouponCheck(valid=False, coupon=coupon, error=error)
    return CouponCheck(valid=True, coupon=coupon, discount_amount=compute_discount(coupon, order_total))


def redeem(db: Session, coupon: Coupon, booking_id: str, customer_name: str, customer_whatsapp: str,
           discount_amount: int, order_total: int) -> CouponUsage:
    """Check-and-increment usage_count plus usage row, staged in the caller's transaction."""
    result = db.execute(
        update(Coupon)
        .where(
            Coupon.id == coupon.id,
            or_(Coupon.usage_limit.is_(None), Coupon.usage_limit == 0, Coupon.usage_count < Coupon.usage_limit),
        )
        .values(usage_count=Coupon.usage_count + 1)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount != 1:
        raise ValidationError("Coupon usage limit reached", coupon_code=coupon.code)
    usage = CouponUsage(
        coupon_id=coupon.id,
        booking_id=booking_id,
        customer_name=customer_name,
        customer_whatsapp=customer_whatsapp,
        discount_amount=discount_amount,
        order_total=order_total,
    )
    db.add(usage)
    logger.info("coupon_redeemed", extra={"extra": {"coupon_code": coupon.code, "booking_id": booking_id}})
    return usage


def record_usage(db: Session, coupon_id: str, booking_id: str, customer_name: str, customer_whatsapp: str,
                 discount_amount: int, order_total: int) -> CouponUsage:
    """Unconditional usage append for bookings already saved elsewhere."""
    with transaction(db, "coupon.record_usage", coupon_id=coupon_id, booking_id=booking_id):
        coupon = db.get(Coupon, coupon_id)
        if not coupon:
            raise NotFoundError("Coupon not found", coupon_id=coupon_id)
        usage = CouponUsage(
            coupon_id=coupon_id,
            booking_id=booking_id,
            customer_name=customer_name,
            customer_whatsapp=customer_whatsapp,
            discount_amount=discount_amount,
            order_total=order_total,
        )
        db.add(usage)
        coupon.usage_count = (coupon.usage_count or 0) + 1
    return usage


def suggestions(db: Session, order_total: int, now: datetime | None = None) -> list[Coupon]:
    now = now or datetime.now(timezone.utc)
    rows = db.execute(
        select(Coupon)
        .where(
            Coupon.is_active.is_(True),
            or_(Coupon.min_purchase.is_(None), Coupon.min_purchase <= order_total),
        )
        .order_by(Coupon.discount_value.desc())
    ).scalars().all()
    # date windows compared in Python, SQLite stores them without an offset
    usable = [c for c in rows if _usable_error(c, order_total, now) is None]
    return usable[:SUGGESTION_LIMIT]


def usage_history(db: Session, coupon_id: str | None = None, limit: int = 200) -> list[tuple[CouponUsage, str]]:
    stmt = select(CouponUsage, Coupon.code).join(Coupon, Coupon.id == CouponUsage.coupon_id)
    if coupon_id:
        stmt = stmt.where(CouponUsage.coupon_id == coupon_id)
    stmt = stmt.order_by(CouponUsage.used_at.desc(), CouponUsage.id.desc()).limit(limit)
    return [(usage, code) for usage, code in db.execute(stmt).all()]


def get_coupon(db: Session, coupon_id: str) -> Coupon:
    coupon = db.get(Coupon, coupon_id)
    if not coupon:
        raise NotFoundError("Coupon not found", coupon_id=coupon_id)
    return coupon


def list_coupons(db: Session, active_only: bool = False) -> list[Coupon]:
    stmt = select(Coupon)
    if active_only:
        stmt = stmt.where(Coupon.is_active.is_(True))
    return list(db.execute(stmt.order_by(Coupon.created_at.desc())).scalars().all())


def _check_values(discount_type: str, discount_value: float, valid_from, valid_until) -> None:
    if discount_type == "percentage" and not (0 < discount_value <= 100):
        raise ValidationError("Percentage discount must be between 0 and 100")
    if valid_from and valid_until and _aware(valid_from) > _aware(valid_until):
        raise ValidationError("validFrom must be before validUntil")


def _ensure_unique(db: Session, code: str, exclude_id: str | None = None) -> None:
    stmt = select(Coupon.id).where(func.upper(Coupon.code) == code)
    if exclude_id:
        stmt = stmt.where(Coupon.id != exclude_id)
    if db.execute(stmt).first():
        raise ValidationError(f"Coupon code {code} already exists", coupon_code=code)


def create_coupon(db: Session, data: CouponIn, actor: str) -> Coupon:
    code = data.code.strip().upper()
    _check_values(data.discountType, data.discountValue, data.validFrom, data.validUntil)
    _ensure_unique(db, code)
    coupon = Coupon(
        id=str(uuid.uuid4()),
        code=code,
        discount_type=data.discountType,
        discount_value=data.discountValue,
        min_purchase=data.minPurchase,
        max_discount=data.maxDiscount,
        usage_limit=data.usageLimit,
        usage_count=0,
        valid_from=data.validFrom,
        valid_until=data.validUntil,
        is_active=data.isActive,
        description=data.description,
    )
    with transaction(db, "coupon.create", code=code):
        db.add(coupon)
        log_audit(db, actor, "coupon.create", "coupon", coupon.id, {"code": code})
    return coupon


_PATCH_COLUMNS = {
    "discountType": "discount_type",
    "discountValue": "discount_value",
    "minPurchase": "min_purchase",
    "maxDiscount": "max_discount",
    "usageLimit": "usage_limit",
    "validFrom": "valid_from",
    "validUntil": "valid_until",
    "isActive": "is_active",
    "description": "description",
}
# null on these means "leave as is"
_NOT_NULL_PATCH = {"discountType", "discountValue", "isActive"}


def update_coupon(db: Session, coupon_id: str, data: CouponPatch, actor: str) -> Coupon:
    coupon = get_coupon(db, coupon_id)
    changes = data.model_dump(exclude_unset=True)
    with transaction(db, "coupon.update", coupon_id=coupon_id):
        if changes.get("code") is not None:
            code = changes["code"].strip().upper()
            _ensure_unique(db, code, exclude_id=coupon.id)
            coupon.code = code
        for field, column in _PATCH_COLUMNS.items():
            if field not in changes:
                continue
            if changes[field] is None and field in _NOT_NULL_PATCH:
                continue
            setattr(coupon, column, changes[field])
        _check_values(coupon.discount_type, coupon.discount_value, coupon.valid_from, coupon.valid_until)
        log_audit(db, actor, "coupon.update", "coupon", coupon.id, {"fields": sorted(changes)})
    return coupon


def delete_coupon(db: Session, coupon_id: str, actor: str) -> None:
    coupon = get_coupon(db, coupon_id)
    with transaction(db, "coupon.delete", coupon_id=coupon_id):
        db.delete(coupon)
        log_audit(db, actor, "coupon.delete", "coupon", coupon_id, {"code": coupon.code})
