"""Coercion helpers for values crossing the persistence boundary.

Rows written by older releases carry loosely typed data (``"1"`` for flags,
``"Canceled"`` for the cancelled status, empty strings for prices). Everything
read from or written to the store passes through these helpers so the services
only ever see canonical values.
"""
from datetime import date, datetime
from enum import Enum
from typing import Any

from app.core.errors import ValidationError


class BookingStatus(str, Enum):
    ACTIVE = "Active"
    CANCELLED = "Cancelled"
    RESCHEDULED = "Rescheduled"
    COMPLETED = "Completed"


# Statuses that occupy their slot
SLOT_HOLDING = (BookingStatus.ACTIVE.value, BookingStatus.RESCHEDULED.value)

SERVICE_CATEGORIES = (
    "Indoor",
    "Indoor Studio",
    "Outdoor",
    "Outdoor / On Location",
    "Wedding",
    "Prewedding Bronze",
    "Prewedding Gold",
    "Prewedding Silver",
    "Wisuda",
    "Family",
    "Birthday",
    "Pas Foto",
    "Self Photo",
)

_STATUS_BY_KEY = {s.value.lower(): s for s in BookingStatus}
_STATUS_BY_KEY["canceled"] = BookingStatus.CANCELLED

_TRUTHY = {"true", "1", "yes", "on"}
_FALSY = {"false", "0", "no", "off"}


def normalize_status(value: Any) -> BookingStatus:
    if isinstance(value, BookingStatus):
        return value
    key = safe_string(value).strip().lower()
    return _STATUS_BY_KEY.get(key, BookingStatus.ACTIVE)


def check_transition(current: Any, new: Any) -> BookingStatus:
    """Return the normalized target status, or raise when leaving Completed."""
    cur = normalize_status(current)
    target = normalize_status(new)
    if cur is BookingStatus.COMPLETED and target is not BookingStatus.COMPLETED:
        raise ValidationError(
            "Completed bookings cannot change status", current=cur.value, requested=target.value
        )
    return target


def validate_category(value: str) -> str:
    category = safe_string(value).strip()
    if category not in SERVICE_CATEGORIES:
        raise ValidationError(f"Unknown service category: {category!r}", category=category)
    return category


def normalize_booking_date(value: Any) -> str:
    """Canonical slot key: ``YYYY-MM-DDTHH:MM``. Plain dates map to midnight."""
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%dT%H:%M")
    if isinstance(value, date):
        return value.strftime("%Y-%m-%dT00:00")
    raw = safe_string(value).strip()
    if not raw:
        raise ValidationError("Booking date is required")
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00").replace(" ", "T", 1))
    except ValueError:
        raise ValidationError(f"Invalid booking date: {raw!r}", value=raw)
    return parsed.strftime("%Y-%m-%dT%H:%M")


def safe_string(value: Any, fallback: str = "") -> str:
    if value is None:
        return fallback
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def safe_int(value: Any, fallback: int = 0) -> int:
    if value is None:
        return fallback
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(round(value))
    raw = safe_string(value).strip()
    if not raw:
        return fallback
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return int(round(float(raw)))
    except ValueError:
        return fallback


def safe_bool(value: Any, fallback: bool = False) -> bool:
    if value is None:
        return fallback
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    raw = safe_string(value).strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    return fallback
