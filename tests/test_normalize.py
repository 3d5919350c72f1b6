from datetime import date, datetime

import pytest

from app.core.errors import ValidationError
from app.services.normalize import (
    BookingStatus,
    check_transition,
    normalize_booking_date,
    normalize_status,
    safe_bool,
    safe_int,
    safe_string,
    validate_category,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Active", BookingStatus.ACTIVE),
        ("Cancelled", BookingStatus.CANCELLED),
        ("Canceled", BookingStatus.CANCELLED),
        ("  canceled ", BookingStatus.CANCELLED),
        ("CANCELLED", BookingStatus.CANCELLED),
        ("rescheduled", BookingStatus.RESCHEDULED),
        ("Completed", BookingStatus.COMPLETED),
        ("", BookingStatus.ACTIVE),
        (None, BookingStatus.ACTIVE),
        ("Pending", BookingStatus.ACTIVE),
    ],
)
def test_normalize_status(raw, expected):
    assert normalize_status(raw) is expected


@pytest.mark.parametrize("raw", ["Active", "Canceled", "rescheduled", "Completed", "bogus", None])
def test_normalize_status_is_idempotent(raw):
    once = normalize_status(raw)
    assert normalize_status(once) is once
    assert normalize_status(once.value) is once


def test_completed_is_terminal():
    with pytest.raises(ValidationError):
        check_transition("Completed", "Active")
    with pytest.raises(ValidationError):
        check_transition("Completed", "Canceled")
    assert check_transition("Completed", "Completed") is BookingStatus.COMPLETED


def test_other_transitions_are_allowed():
    assert check_transition("Active", "Canceled") is BookingStatus.CANCELLED
    assert check_transition("Cancelled", "Active") is BookingStatus.ACTIVE
    assert check_transition("Rescheduled", "Completed") is BookingStatus.COMPLETED


def test_safe_helpers():
    assert safe_string(None) == ""
    assert safe_string(None, "n/a") == "n/a"
    assert safe_string(12) == "12"
    assert safe_int("1500") == 1500
    assert safe_int("12.6") == 13
    assert safe_int("abc", 7) == 7
    assert safe_int(None) == 0
    assert safe_int("") == 0
    assert safe_bool("yes") is True
    assert safe_bool("0") is False
    assert safe_bool(1) is True
    assert safe_bool(None, True) is True
    assert safe_bool("maybe") is False


def test_booking_date_normalization():
    assert normalize_booking_date("2026-11-01T10:00") == "2026-11-01T10:00"
    assert normalize_booking_date("2026-11-01T10:00:45") == "2026-11-01T10:00"
    assert normalize_booking_date("2026-11-01 10:00") == "2026-11-01T10:00"
    assert normalize_booking_date("2026-11-01") == "2026-11-01T00:00"
    assert normalize_booking_date(datetime(2026, 11, 1, 9, 30)) == "2026-11-01T09:30"
    assert normalize_booking_date(date(2026, 11, 1)) == "2026-11-01T00:00"
    with pytest.raises(ValidationError):
        normalize_booking_date("next tuesday")
    with pytest.raises(ValidationError):
        normalize_booking_date("")


def test_validate_category():
    assert validate_category(" Wedding ") == "Wedding"
    assert validate_category("Outdoor / On Location") == "Outdoor / On Location"
    with pytest.raises(ValidationError):
        validate_category("Underwater")
