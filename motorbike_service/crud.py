from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .errors import InfrastructureError, NotFound
from .validation import Interval


@contextmanager
def _db_errors(db: Session, message: str):
    """Roll back and surface SQLAlchemy failures as ``InfrastructureError``."""
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(message)
        raise InfrastructureError(message) from exc


def list_bookings(db: Session) -> List[models.Booking]:
    with _db_errors(db, "Server error fetching bookings"):
        return (
            db.query(models.Booking)
            .order_by(models.Booking.created_at.desc())
            .all()
        )


def list_approved_bookings(db: Session) -> List[models.Booking]:
    with _db_errors(db, "Server error fetching approved bookings"):
        return (
            db.query(models.Booking)
            .filter(models.Booking.status == models.BookingStatus.APPROVED)
            .order_by(models.Booking.booking_time.asc())
            .all()
        )


def approved_intervals(
    db: Session,
    exclude_booking_id: Optional[str] = None,
    message: str = "Server error creating booking",
) -> List[Interval]:
    """
    Load the intervals of every approved booking.

    Parameters
    ----------
    db : Session
        Database session.
    exclude_booking_id : Optional[str]
        If provided, leave this booking out (used when re-checking an
        approval).
    message : str
        Error message reported if the query fails.
    """
    with _db_errors(db, message):
        q = db.query(models.Booking).filter(
            models.Booking.status == models.BookingStatus.APPROVED
        )
        if exclude_booking_id is not None:
            q = q.filter(models.Booking.id != exclude_booking_id)
        return [Interval.from_booking(b) for b in q.all()]


def get_booking(db: Session, booking_id: str, message: str) -> models.Booking:
    """
    Load a booking by ID or raise ``NotFound``.
    """
    with _db_errors(db, message):
        booking = db.get(models.Booking, booking_id)
    if booking is None:
        raise NotFound("Booking not found")
    return booking


def create_booking(
    db: Session, name: str, purpose: str, booking_time: datetime, return_time: datetime
) -> models.Booking:
    with _db_errors(db, "Server error creating booking"):
        booking = models.Booking(
            name=name,
            purpose=purpose,
            booking_time=booking_time,
            return_time=return_time,
            status=models.BookingStatus.PENDING,
            created_at=models.utc_now(),
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
    return booking


def save_booking(db: Session, booking: models.Booking) -> models.Booking:
    with _db_errors(db, "Server error updating booking"):
        db.add(booking)
        db.commit()
        db.refresh(booking)
    return booking


def delete_booking(db: Session, booking_id: str) -> None:
    booking = get_booking(db, booking_id, "Server error deleting booking")
    with _db_errors(db, "Server error deleting booking"):
        db.delete(booking)
        db.commit()
