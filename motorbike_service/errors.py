"""
Error taxonomy for the motorbike booking service.

Every error carries a human-readable ``message`` and the HTTP status it is
surfaced with by the API layer.
"""


class BookingError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BookingError):
    """Client supplied something the service cannot accept."""

    status_code = 400


class MissingField(ValidationError):
    pass


class InvalidDate(ValidationError):
    pass


class InvalidOrder(ValidationError):
    pass


class ScheduleConflict(ValidationError):
    pass


class InvalidStatus(ValidationError):
    pass


class NotFound(BookingError):
    status_code = 404


class InfrastructureError(BookingError):
    """The persistence layer failed; reported as a generic server error."""

    status_code = 500
