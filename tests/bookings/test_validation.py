import os
import sys
from datetime import datetime, timedelta, timezone

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest

from motorbike_service.errors import (
    InvalidDate,
    InvalidOrder,
    InvalidStatus,
    ScheduleConflict,
    ValidationError,
)
from motorbike_service.models import Booking, BookingStatus, utc_now
from motorbike_service.validation import Interval, parse_instant, transition, validate

TEN = datetime(2024, 1, 1, 10, 0)
ELEVEN = datetime(2024, 1, 1, 11, 0)


def approved(start: datetime, end: datetime) -> Interval:
    return Interval(start, end, BookingStatus.APPROVED)


def test_inner_interval_conflicts():
    # approved 10:00-11:00, candidate 10:30-10:45
    with pytest.raises(ScheduleConflict) as exc_info:
        validate("2024-01-01T10:30", "2024-01-01T10:45", [approved(TEN, ELEVEN)])
    assert "2024-01-01T10:00:00" in exc_info.value.message
    assert "2024-01-01T11:00:00" in exc_info.value.message


def test_touching_endpoint_conflicts():
    with pytest.raises(ScheduleConflict):
        validate("2024-01-01T11:00", "2024-01-01T12:00", [approved(TEN, ELEVEN)])


def test_touching_start_conflicts():
    with pytest.raises(ScheduleConflict):
        validate("2024-01-01T09:00", "2024-01-01T10:00", [approved(TEN, ELEVEN)])


def test_one_minute_gap_is_accepted():
    interval = validate("2024-01-01T11:01", "2024-01-01T12:00", [approved(TEN, ELEVEN)])
    assert interval.start == datetime(2024, 1, 1, 11, 1)
    assert interval.end == datetime(2024, 1, 1, 12, 0)


def test_enclosing_interval_conflicts():
    with pytest.raises(ScheduleConflict):
        validate("2024-01-01T08:00", "2024-01-01T13:00", [approved(TEN, ELEVEN)])


def test_return_before_booking_is_invalid_order():
    with pytest.raises(InvalidOrder):
        validate("2024-01-01T10:00", "2024-01-01T09:00", [])


def test_equal_bounds_are_invalid_order():
    with pytest.raises(InvalidOrder):
        validate("2024-01-01T10:00", "2024-01-01T10:00", [])


def test_invalid_order_wins_over_conflict():
    with pytest.raises(InvalidOrder):
        validate("2024-01-01T10:45", "2024-01-01T10:30", [approved(TEN, ELEVEN)])


@pytest.mark.parametrize(
    "booking_time, return_time",
    [
        ("not-a-date", "2024-01-01T10:00"),
        ("2024-01-01T10:00", "tomorrow"),
        ("2024-13-45T10:00", "2024-01-01T10:00"),
        # parses, but shifting the offset to UTC leaves the datetime range
        ("0001-01-01T00:30:00+01:00", "2024-01-01T10:00"),
    ],
)
def test_unparsable_dates_are_rejected(booking_time, return_time):
    with pytest.raises(InvalidDate):
        validate(booking_time, return_time, [approved(TEN, ELEVEN)])


def test_pending_and_rejected_never_conflict():
    existing = [
        Interval(TEN, ELEVEN, BookingStatus.PENDING),
        Interval(TEN, ELEVEN, BookingStatus.REJECTED),
    ]
    interval = validate("2024-01-01T10:00", "2024-01-01T11:00", existing)
    assert interval.start == TEN


def test_offsets_are_converted_to_utc():
    assert parse_instant("2024-01-01T12:00:00+02:00") == TEN
    assert parse_instant("2024-01-01T10:00:00Z") == TEN


def test_errors_belong_to_validation_family():
    for error in (InvalidDate, InvalidOrder, ScheduleConflict, InvalidStatus):
        assert issubclass(error, ValidationError)
        assert error.status_code == 400


def test_interval_overlap_is_symmetric():
    a = approved(TEN, ELEVEN)
    b = approved(ELEVEN, ELEVEN + timedelta(hours=1))
    c = approved(ELEVEN + timedelta(minutes=1), ELEVEN + timedelta(hours=1))
    assert a.overlaps(b) and b.overlaps(a)
    assert not a.overlaps(c) and not c.overlaps(a)


def test_transition_allows_any_status_change():
    booking = Booking(status=BookingStatus.REJECTED)
    transition(booking, "approved")
    assert booking.status == BookingStatus.APPROVED
    transition(booking, "approved")
    assert booking.status == BookingStatus.APPROVED
    transition(booking, "pending")
    assert booking.status == BookingStatus.PENDING


@pytest.mark.parametrize("value", ["archived", "APPROVED", "", None, 1])
def test_transition_rejects_unknown_status(value):
    booking = Booking(status=BookingStatus.PENDING)
    with pytest.raises(InvalidStatus):
        transition(booking, value)
    assert booking.status == BookingStatus.PENDING


def test_utc_now_is_naive_utc():
    before = datetime.now(timezone.utc).replace(tzinfo=None)
    now = utc_now()
    assert now.tzinfo is None
    assert before <= now <= before + timedelta(seconds=5)
