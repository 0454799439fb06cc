import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# Create Base class for models
Base = declarative_base()

DEFAULT_DATABASE_URL = "sqlite:///./homecare.db"

# Internal lazy globals
_engine = None
_SessionLocal = None
_database_url = None


def _is_postgres(database_url: str) -> bool:
    try:
        url = make_url(database_url)
    except ArgumentError:
        return False
    return url.drivername.startswith("postgres")


def get_engine():
    """Return a cached SQLAlchemy engine, creating it from DATABASE_URL on
    first call. This allows tests to set DATABASE_URL before the engine is
    constructed."""
    global _engine
    global _database_url
    global _SessionLocal
    database_url = os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
    # If engine not created yet or DATABASE_URL changed, (re)create engine
    if _engine is None or _database_url != database_url:
        if _engine is not None:
            _engine.dispose()
            _SessionLocal = None

        if _is_postgres(database_url):
            _engine = create_engine(
                database_url,
                pool_size=10,
                max_overflow=20,
                pool_pre_ping=True,  # Detects and refreshes stale connections
                pool_recycle=3600,
                connect_args={
                    "application_name": "homecare_ledger",
                    "connect_timeout": 10,
                },
                echo=False,  # Controlled by logging config
            )
        elif database_url.startswith("sqlite") and ":memory:" in database_url:
            # Use a single shared in-memory database across the process
            # so DDL persists across connections.
            _engine = create_engine(
                database_url,
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            _engine = create_engine(database_url, echo=False)

        logger.debug(
            "SQLAlchemy engine created",
            extra={"context": {"dialect": _engine.dialect.name}},
        )
        _database_url = database_url
    return _engine


def get_sessionmaker():
    """Return a cached sessionmaker bound to the lazy engine."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, bind=get_engine()
        )
    return _SessionLocal


def SessionLocal():
    """Calling SessionLocal() returns a new Session bound to the current
    engine."""
    return get_sessionmaker()()


def create_tables():
    """Create all tables in database using the lazy engine."""
    # Models must be imported so Base.metadata is populated
    from homecare.db import base  # noqa: F401

    Base.metadata.create_all(bind=get_engine())


def drop_tables():
    """Drop all tables; used by the test fixtures."""
    from homecare.db import base  # noqa: F401

    Base.metadata.drop_all(bind=get_engine())
