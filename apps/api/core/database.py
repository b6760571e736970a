"""
Database connection management with connection pooling.

Provides the engine, the session factory, the FastAPI session dependency and
the unit-of-work helper every state-changing service runs inside.
"""
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker, Session
from core.config import settings
from core.exceptions import APIException, ConflictError, InternalError
import logging

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url


def build_engine(url: str = DATABASE_URL, **overrides):
    """Create an engine; pool sizing only applies to server databases."""
    if make_url(url).get_backend_name() == "sqlite":
        options = {"connect_args": {"check_same_thread": False}}
    else:
        options = {
            "pool_size": settings.DB_POOL_SIZE,  # Number of connections to maintain
            "max_overflow": settings.DB_MAX_OVERFLOW,  # Additional connections beyond pool_size
            "pool_timeout": settings.DB_POOL_TIMEOUT,  # Seconds to wait for connection
            "pool_recycle": settings.DB_POOL_RECYCLE,  # Recycle connections after this many seconds
            "pool_pre_ping": True,  # Verify connections before using
        }
    options.update(overrides)
    return create_engine(url, echo=settings.DEBUG, **options)


engine = build_engine()

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,  # Prevent lazy loading issues
)

Base = declarative_base()


@event.listens_for(engine, "connect")
def on_connect(dbapi_conn, connection_record):
    """Set connection-level settings."""
    logger.debug("New database connection established")


def get_db() -> Iterator[Session]:
    """
    Dependency for FastAPI to get database session.

    Services own their commits through unit_of_work(); this dependency only
    guarantees the session is rolled back on error and always closed.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        db.rollback()
        # Only log actual database errors, not API errors
        if not isinstance(e, APIException):
            logger.error(f"Database transaction error: {e}")
        raise
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """
    Run a block as one all-or-nothing transaction.

    Commits when the block finishes, rolls back on any exception. Integrity
    violations surface as ConflictError, other store failures as InternalError;
    API errors raised inside the block propagate unchanged.
    """
    try:
        yield db
        db.commit()
    except APIException:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Integrity violation rolled back: {e.orig}")
        raise ConflictError("Conflicting record already exists") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Store failure rolled back: {e}", exc_info=True)
        raise InternalError() from e
    except Exception:
        db.rollback()
        raise


def check_db_connection() -> bool:
    """
    Check if database connection is healthy.

    Returns:
        True if connection is healthy, False otherwise
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False
