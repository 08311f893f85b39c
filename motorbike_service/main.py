from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from common.cache import JsonCache

from . import crud, models, schemas
from .config import Settings, load_settings
from .database import BookingStore, get_db
from .errors import BookingError, MissingField
from .logger import logger, setup_logging
from .rate_limiter import SubmissionRateLimiter, submission_rate_limiter
from .validation import parse_status, transition, validate

SERVICE_NAME = "motorbike-bookings"
APPROVED_CACHE_KEY = "bookings:approved"

router = APIRouter(prefix="/api")


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_cache(request: Request) -> JsonCache:
    return request.app.state.cache


def _error_response(request: Request, status_code: int, detail) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "service": SERVICE_NAME,
            "path": request.url.path,
            "method": request.method,
            "status_code": status_code,
            "detail": detail,
            "message": detail,
        },
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    return _error_response(request, exc.status_code, exc.detail)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info("Malformed request body on {} {}: {}", request.method, request.url.path, exc.errors())
    return _error_response(request, status.HTTP_400_BAD_REQUEST, "Invalid request body")


async def booking_error_handler(request: Request, exc: BookingError):
    if exc.status_code >= 500:
        logger.error("{} {} failed: {}", request.method, request.url.path, exc.message)
    else:
        logger.info("{} {} rejected: {}", request.method, request.url.path, exc.message)
    return _error_response(request, exc.status_code, exc.message)


async def generic_exception_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error("Unhandled error on {} {}", request.method, request.url.path)
    return _error_response(request, 500, "Internal server error")


def _invalidate_approved(cache: JsonCache) -> None:
    cache.delete_prefix(APPROVED_CACHE_KEY)


# ---------- Health ----------


@router.get("/health", response_model=schemas.HealthResponse)
def health(request: Request):
    """
    Report service and database status.

    Returns
    -------
    dict
        ``status`` is always "OK"; ``database`` is "Connected" or
        "Disconnected"; ``timestamp`` is the current UTC time (ISO 8601).
    """
    store: BookingStore = request.app.state.store
    return {
        "status": "OK",
        "database": "Connected" if store.is_connected() else "Disconnected",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ---------- Admin view: all bookings ----------


@router.get("/bookings", response_model=List[schemas.BookingRead])
def list_all_bookings(db: Session = Depends(get_db)):
    """
    List every booking, newest submission first.
    """
    return crud.list_bookings(db)


# ---------- Public view: approved bookings ----------


@router.get("/bookings/approved", response_model=List[schemas.BookingRead])
def list_approved_bookings(
    db: Session = Depends(get_db),
    cache: JsonCache = Depends(get_cache),
):
    """
    List approved bookings ordered by booking time.

    The result is served from the Redis cache when one is configured.

    Returns
    -------
    List[BookingRead]
        Approved bookings, earliest booking time first.
    """
    cached = cache.get_json(APPROVED_CACHE_KEY)
    if cached is not None:
        return cached

    bookings = crud.list_approved_bookings(db)
    data = [
        schemas.BookingRead.model_validate(b).model_dump(mode="json", by_alias=True)
        for b in bookings
    ]
    cache.set_json(APPROVED_CACHE_KEY, data)
    return data


# ---------- Submit a booking request ----------


@router.post(
    "/bookings",
    response_model=schemas.BookingRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(submission_rate_limiter)],
)
def create_booking(
    booking_in: schemas.BookingCreate,
    db: Session = Depends(get_db),
):
    """
    Submit a new booking request.

    Behavior
    --------
    - Requires name, purpose, bookingTime and returnTime.
    - Validates both dates and their order.
    - Rejects intervals that overlap an approved booking, touching
      endpoints included. Pending and rejected bookings never block.
    - New bookings start as pending.

    Parameters
    ----------
    booking_in : BookingCreate
        Requester, purpose and time window.
    db : Session
        Database session.

    Returns
    -------
    BookingRead
        The newly created booking.

    Raises
    ------
    ValidationError
        Missing field, invalid date, wrong order, or schedule conflict.
    """
    logger.info(
        "Received booking request: name={!r} purpose={!r} bookingTime={!r} returnTime={!r}",
        booking_in.name,
        booking_in.purpose,
        booking_in.booking_time,
        booking_in.return_time,
    )

    if not (
        booking_in.name
        and booking_in.purpose
        and booking_in.booking_time
        and booking_in.return_time
    ):
        raise MissingField(
            "All fields are required: name, purpose, bookingTime, returnTime"
        )

    interval = validate(
        booking_in.booking_time,
        booking_in.return_time,
        crud.approved_intervals(db),
    )

    booking = crud.create_booking(
        db,
        name=booking_in.name,
        purpose=booking_in.purpose,
        booking_time=interval.start,
        return_time=interval.end,
    )
    logger.info("Booking created successfully: {}", booking.id)
    return booking


# ---------- Admin: change status ----------


@router.patch("/bookings/{booking_id}", response_model=schemas.BookingRead)
def update_booking_status(
    booking_id: str,
    update_data: schemas.BookingStatusUpdate,
    db: Session = Depends(get_db),
    cache: JsonCache = Depends(get_cache),
    settings: Settings = Depends(get_settings),
):
    """
    Set the status of a booking.

    Any status may be set from any status. When ``revalidate_on_approval``
    is enabled, approving a booking that overlaps another approved booking
    is rejected.

    Raises
    ------
    InvalidStatus
        If the status is not pending, approved or rejected.
    NotFound
        If the booking does not exist.
    """
    new_status = parse_status(update_data.status)
    booking = crud.get_booking(db, booking_id, "Server error updating booking")

    if settings.revalidate_on_approval and new_status == models.BookingStatus.APPROVED:
        validate(
            booking.booking_time,
            booking.return_time,
            crud.approved_intervals(
                db,
                exclude_booking_id=booking.id,
                message="Server error updating booking",
            ),
        )

    transition(booking, new_status)
    booking = crud.save_booking(db, booking)
    _invalidate_approved(cache)
    logger.info("Booking {} set to {}", booking.id, booking.status.value)
    return booking


# ---------- Admin: delete ----------


@router.delete("/bookings/{booking_id}", response_model=schemas.MessageResponse)
def delete_booking(
    booking_id: str,
    db: Session = Depends(get_db),
    cache: JsonCache = Depends(get_cache),
):
    """
    Permanently remove a booking.

    Raises
    ------
    NotFound
        If the booking does not exist.
    """
    crud.delete_booking(db, booking_id)
    _invalidate_approved(cache)
    logger.info("Booking deleted: {}", booking_id)
    return {"message": "Booking deleted successfully"}


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    The booking store, cache and rate limiter are created here and opened
    by the lifespan; nothing touches the database at import time.

    Parameters
    ----------
    settings : Optional[Settings]
        Configuration to use. Read from the environment when omitted.
    """
    settings = settings or load_settings()
    setup_logging(settings.log_level, settings.log_file)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store: BookingStore = app.state.store
        try:
            store.open()
        except Exception:
            logger.critical("Could not connect to the booking database, aborting startup")
            raise
        app.state.cache.open()
        logger.info("Motorbike booking service started")
        yield
        app.state.cache.close()
        store.close()
        logger.info("Motorbike booking service stopped")

    app = FastAPI(title="Motorbike Booking Service", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = BookingStore(settings.database_url)
    app.state.cache = JsonCache(settings.redis_url, ttl_seconds=settings.cache_ttl_seconds)
    app.state.rate_limiter = SubmissionRateLimiter(settings.rate_limit_per_minute)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(BookingError, booking_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    @app.get("/")
    def root():
        """
        Landing endpoint listing the main API routes.
        """
        return {
            "message": "Motorbike Booking API is running!",
            "endpoints": {
                "health": "/api/health",
                "bookings": "/api/bookings",
                "approvedBookings": "/api/bookings/approved",
            },
        }

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
