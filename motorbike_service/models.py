import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum

from sqlalchemy import Column, DateTime, Enum, String, Text

from .database import Base


class BookingStatus(str, PyEnum):
    """
    Enumeration of possible booking statuses.

    Values
    ------
    pending
        Booking has been requested and awaits an admin decision.
    approved
        Booking holds the motorbike for the given time range.
    rejected
        Booking was turned down and never blocks the motorbike.
    """
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


def _new_booking_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Booking(Base):
    """
    SQLAlchemy model representing a motorbike booking request.

    Attributes
    ----------
    id : str
        Opaque identifier assigned at creation.
    name : str
        Name of the person requesting the motorbike.
    purpose : str
        Free-text reason for the booking.
    booking_time : datetime
        Start of the requested interval (naive UTC).
    return_time : datetime
        End of the requested interval (naive UTC).
    status : BookingStatus
        Current status of the booking (pending/approved/rejected).
    created_at : datetime
        Timestamp when the booking was created.
    """
    __tablename__ = "bookings"

    id = Column(String(32), primary_key=True, default=_new_booking_id)
    name = Column(String(255), nullable=False)
    purpose = Column(Text, nullable=False)
    booking_time = Column(DateTime, index=True, nullable=False)
    return_time = Column(DateTime, nullable=False)
    status = Column(
        Enum(BookingStatus, values_callable=lambda e: [m.value for m in e]),
        index=True,
        nullable=False,
        default=BookingStatus.PENDING,
    )
    created_at = Column(DateTime, index=True, nullable=False, default=utc_now)
