from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .models import BookingStatus


class BookingCreate(BaseModel):
    """
    Schema for submitting a new booking request.

    All fields are optional here so a missing value is reported with the
    single "all fields are required" message; dates are parsed by the
    validator.
    """
    name: Optional[str] = None
    purpose: Optional[str] = None
    booking_time: Optional[Any] = None
    return_time: Optional[Any] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BookingStatusUpdate(BaseModel):
    """
    Schema for an admin status change. The value is checked by the
    transition rule, not by pydantic.
    """
    status: Optional[Any] = None


class BookingRead(BaseModel):
    """
    Schema returned when reading booking information.
    """
    id: str
    name: str
    purpose: str
    booking_time: datetime
    return_time: datetime
    status: BookingStatus
    created_at: datetime

    model_config = ConfigDict(
        from_attributes=True, alias_generator=to_camel, populate_by_name=True
    )


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str
    database: str
    timestamp: str
