from dataclasses import dataclass, asdict
from datetime import date, timedelta
from typing import Any
from sqlalchemy import select, func
from sqlalchemy.orm import Session, selectinload

from app.core.errors import ValidationError
from app.models.booking import Booking
from app.models.expense import Expense
from app.models.payment import Payment
from app.services.normalize import BookingStatus, SLOT_HOLDING, safe_int, safe_string


@dataclass
class FinanceSnapshot:
    total: int
    paid: int
    balance: int
    is_paid_off: bool

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PriceBreakdown:
    service_base_price: int
    base_discount: int
    addons_total: int
    coupon_discount: int
    coupon_code: str | None
    # True when the figures were derived from add-on snapshots instead of stored columns
    is_reconstructed: bool

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def calculate_finance(booking: Any) -> FinanceSnapshot:
    total = safe_int(getattr(booking, "total_price", 0))
    paid = sum(safe_int(p.amount) for p in (getattr(booking, "payments", None) or []))
    balance = total - paid
    return FinanceSnapshot(total=total, paid=paid, balance=balance, is_paid_off=balance <= 0 and total > 0)


def get_or_reconstruct_breakdown(booking: Any) -> PriceBreakdown:
    coupon_code = getattr(booking, "coupon_code", None)
    if getattr(booking, "service_base_price", None) is not None:
        return PriceBreakdown(
            service_base_price=safe_int(booking.service_base_price),
            base_discount=safe_int(getattr(booking, "base_discount", None)),
            addons_total=safe_int(getattr(booking, "addons_total", None)),
            coupon_discount=safe_int(getattr(booking, "coupon_discount", None)),
            coupon_code=coupon_code,
            is_reconstructed=False,
        )
    addons_total = sum(
        safe_int(a.price_at_booking) * safe_int(a.quantity, 1) for a in (getattr(booking, "addons", None) or [])
    )
    return PriceBreakdown(
        service_base_price=0,
        base_discount=0,
        addons_total=addons_total,
        coupon_discount=0,
        coupon_code=coupon_code,
        is_reconstructed=True,
    )


# bounds of an open date range
OPEN_START = "0001-01-01"
OPEN_END = "9998-12-31"


def parse_range(start: str | date, end: str | date) -> tuple[str, str]:
    """Inclusive day range as ``[start, day after end)`` string bounds."""
    try:
        start_d = start if isinstance(start, date) else date.fromisoformat(safe_string(start))
        end_d = end if isinstance(end, date) else date.fromisoformat(safe_string(end))
    except ValueError:
        raise ValidationError("Dates must be YYYY-MM-DD", start=str(start), end=str(end))
    if end_d < start_d:
        raise ValidationError("End date is before start date", start=str(start_d), end=str(end_d))
    return start_d.isoformat(), (end_d + timedelta(days=1)).isoformat()


def finance_summary(db: Session, start: str | date | None = None, end: str | date | None = None) -> dict[str, Any]:
    """Cash-flow totals for a day range. A missing bound leaves that side open."""
    lo, hi = parse_range(start or OPEN_START, end or OPEN_END)

    revenue = db.execute(
        select(func.coalesce(func.sum(Payment.amount), 0)).where(Payment.date >= lo, Payment.date < hi)
    ).scalar_one()
    expenses = db.execute(
        select(func.coalesce(func.sum(Expense.amount), 0)).where(Expense.date >= lo, Expense.date < hi)
    ).scalar_one()

    open_bookings = db.execute(
        select(Booking).where(Booking.status.in_(SLOT_HOLDING)).options(selectinload(Booking.payments))
    ).scalars().all()
    outstanding = sum(max(calculate_finance(b).balance, 0) for b in open_bookings)

    by_category = db.execute(
        select(Booking.customer_category, func.coalesce(func.sum(Booking.total_price), 0))
        .where(
            Booking.status != BookingStatus.CANCELLED.value,
            Booking.booking_date >= lo,
            Booking.booking_date < hi,
        )
        .group_by(Booking.customer_category)
    ).all()

    revenue = int(revenue)
    expenses = int(expenses)
    return {
        "start": lo if start else None,
        "end": (date.fromisoformat(hi) - timedelta(days=1)).isoformat() if end else None,
        "revenue": revenue,
        "expenses": expenses,
        "profit": revenue - expenses,
        "outstanding": outstanding,
        "revenueByCategory": {cat: int(total) for cat, total in by_category},
    }
