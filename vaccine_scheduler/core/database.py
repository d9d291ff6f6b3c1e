from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
from typing import Generator, Iterator
import logging
import redis

from .config import settings
from .exceptions import StorageError

logger = logging.getLogger(__name__)

def build_engine(database_url: str) -> Engine:
    """Create an engine configured for the backend behind ``database_url``."""
    url = make_url(database_url)
    if url.drivername.startswith("sqlite"):
        # SQLite serializes writers; wait for the lock instead of failing fast
        connect_args = {"check_same_thread": False, "timeout": 30}
        if url.database in (None, "", ":memory:"):
            return create_engine(database_url, connect_args=connect_args, poolclass=StaticPool)
        return create_engine(database_url, connect_args=connect_args)

    # PostgreSQL setup with appropriate connection pool settings
    return create_engine(
        database_url,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_pre_ping=True,
        pool_recycle=1800,  # Recycle connections after 30 minutes
    )

engine = build_engine(settings.get_database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

_redis_client = None

# Database dependency
def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

# Redis dependency
def get_redis():
    """Get Redis client."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis_client

@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Run a unit of work: commit on success, roll back on any failure.

    Storage failures surface as StorageError; every other exception is
    re-raised untouched after the rollback.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"Transaction rolled back: {str(exc)}", exc_info=True)
        raise StorageError() from exc
    except Exception:
        db.rollback()
        raise

# Database initialization
def init_db(bind: Engine = None):
    """Initialize database tables."""
    from .. import models  # noqa: F401  registers every table on Base.metadata
    Base.metadata.create_all(bind=bind or engine)
