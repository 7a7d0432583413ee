from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker, Session
from typing import Generator, Iterator
import logging
import redis
from .config import settings
from .exceptions import ConflictError

logger = logging.getLogger(__name__)

def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": 30,
        "pool_recycle": 1800,  # Recycle connections after 30 minutes
        "pool_pre_ping": True,
    }

engine = create_engine(
    settings.get_database_url,
    **_engine_options(settings.get_database_url)
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

# Connection is opened lazily on first command
redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)

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
    return redis_client

@contextmanager
def transaction(db: Session, conflict_detail: str) -> Iterator[Session]:
    """Commit everything done in the block as one unit, or nothing.

    A unique-constraint violation raised by the database (for instance two
    requests racing for the same slot) is reported as a ``ConflictError``.
    Any other failure rolls back and propagates unchanged.
    """
    try:
        yield db
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Integrity violation, transaction rolled back: {e.orig}")
        raise ConflictError(conflict_detail)
    except Exception:
        db.rollback()
        raise

def import_models():
    """Import every model module so the mappers and tables are registered."""
    from ..models import user, patient, practitioner, appointment, clinical_note  # noqa: F401

# Database initialization
def init_db():
    """Initialize database tables."""
    import_models()
    Base.metadata.create_all(bind=engine)
