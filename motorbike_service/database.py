from typing import Optional

from fastapi import Request
from loguru import logger
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

Base = declarative_base()


class BookingStore:
    """
    Explicitly managed handle on the bookings database.

    The store is created from a database URL, opened once at application
    startup and closed at shutdown. Request handlers obtain sessions from it
    through the ``get_db`` dependency.

    Parameters
    ----------
    database_url : str
        SQLAlchemy database URL.
    echo : bool
        Echo emitted SQL (debugging only).
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        self.echo = echo
        self.engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    def open(self) -> None:
        """
        Create the engine, verify connectivity and create the schema.

        Raises
        ------
        SQLAlchemyError
            If the database cannot be reached. Callers treat this as fatal.
        """
        from . import models  # noqa: F401  registers the tables on Base

        connect_args = {}
        if self.database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False

        self.engine = create_engine(
            self.database_url, echo=self.echo, connect_args=connect_args
        )
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        Base.metadata.create_all(bind=self.engine)

        self._session_factory = sessionmaker(
            autocommit=False, autoflush=False, bind=self.engine
        )
        logger.info("Booking store connected ({})", self.engine.url.render_as_string(hide_password=True))

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
            logger.info("Booking store disposed")
        self.engine = None
        self._session_factory = None

    @property
    def is_open(self) -> bool:
        return self._session_factory is not None

    def is_connected(self) -> bool:
        """Return True if a trivial query succeeds against the database."""
        if self.engine is None:
            return False
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.warning("Booking store health check failed")
            return False
        return True

    def session(self) -> Session:
        if self._session_factory is None:
            raise RuntimeError("Booking store is not open")
        return self._session_factory()


def get_db(request: Request):
    """
    Yield a SQLAlchemy session from the application's booking store.

    This function is used as a FastAPI dependency, creating a session per
    HTTP request and ensuring it is closed afterwards.

    Yields
    ------
    Session
        Active SQLAlchemy session bound to the store's engine.
    """
    db = request.app.state.store.session()
    try:
        yield db
    finally:
        db.close()
