from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors import InvalidDate, InvalidOrder, InvalidStatus, ScheduleConflict
from .models import BookingStatus

_instant_adapter = TypeAdapter(datetime)


@dataclass(frozen=True)
class Interval:
    """
    Closed time interval ``[start, end]`` in naive UTC.

    Attributes
    ----------
    start : datetime
        Booking time.
    end : datetime
        Return time.
    status : BookingStatus
        Status of the booking the interval belongs to.
    """
    start: datetime
    end: datetime
    status: BookingStatus = BookingStatus.APPROVED

    @classmethod
    def from_booking(cls, booking) -> "Interval":
        return cls(booking.booking_time, booking.return_time, booking.status)

    def overlaps(self, other: "Interval") -> bool:
        # Touching endpoints share an instant and therefore overlap.
        return self.start <= other.end and self.end >= other.start


def parse_instant(value: Any) -> datetime:
    """
    Parse an ISO-8601 string (or unix timestamp) into a naive UTC datetime.

    Parameters
    ----------
    value : Any
        Raw value taken from the request body.

    Returns
    -------
    datetime
        Parsed instant. Offsets are converted to UTC and dropped; values
        without an offset are taken as UTC.

    Raises
    ------
    InvalidDate
        If the value cannot be parsed.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = _instant_adapter.validate_python(value)
        except PydanticValidationError as exc:
            raise InvalidDate(
                "Invalid date format for bookingTime or returnTime"
            ) from exc

    if parsed.tzinfo is not None:
        try:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        except (OverflowError, ValueError) as exc:
            raise InvalidDate(
                "Invalid date format for bookingTime or returnTime"
            ) from exc
    return parsed


def validate(booking_time: Any, return_time: Any, existing_approved: Iterable[Interval]) -> Interval:
    """
    Decide whether a candidate interval may be submitted.

    Parameters
    ----------
    booking_time : Any
        Raw start of the candidate interval.
    return_time : Any
        Raw end of the candidate interval.
    existing_approved : Iterable[Interval]
        Intervals of the approved bookings. Items whose status is not
        ``approved`` are ignored.

    Returns
    -------
    Interval
        The parsed candidate, ready to be persisted.

    Raises
    ------
    InvalidDate
        If either bound does not parse as an instant.
    InvalidOrder
        If the start is not strictly before the end.
    ScheduleConflict
        If the candidate shares at least one instant with an approved
        interval. The message names the offending interval's bounds.
    """
    start = parse_instant(booking_time)
    end = parse_instant(return_time)

    if start >= end:
        raise InvalidOrder("Return time must be after booking time")

    candidate = Interval(start, end, BookingStatus.PENDING)

    for existing in existing_approved:
        if existing.status != BookingStatus.APPROVED:
            continue
        if existing.overlaps(candidate):
            raise ScheduleConflict(
                f"Time conflict with existing booking from "
                f"{existing.start.isoformat()} to {existing.end.isoformat()}"
            )

    return candidate


def parse_status(value: Any) -> BookingStatus:
    """Return the matching status or raise ``InvalidStatus``."""
    for status in BookingStatus:
        if value == status.value:
            return status
    raise InvalidStatus("Invalid status")


def transition(booking, new_status: Any):
    """
    Move a booking to ``new_status``.

    Any status may move to any other status, including to itself. Approved
    bookings are not re-checked against each other here.

    Raises
    ------
    InvalidStatus
        If ``new_status`` is not one of pending, approved, rejected.
    """
    booking.status = parse_status(new_status)
    return booking
