"""
Database configuration and session management
"""
import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import DATABASE_URL
from .errors import BookingError, StorageFailure

logger = logging.getLogger(__name__)


def configure_sqlite(engine):
    """Make SQLite take the write lock at BEGIN and enforce foreign keys.

    pysqlite defers BEGIN until the first write, which lets two requests read the
    same day before either inserts. BEGIN IMMEDIATE serializes them and also
    makes SAVEPOINT usable.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def make_engine(url: str):
    if url.startswith("sqlite"):
        engine = create_engine(url, connect_args={"check_same_thread": False})
        return configure_sqlite(engine)
    return create_engine(url, pool_pre_ping=True)


# Create engine
engine = make_engine(DATABASE_URL)

# Session
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()

# Dependency
def get_db():
    """Get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session):
    """Commit on success; roll back and re-raise typed errors otherwise"""
    try:
        yield
        db.commit()
    except BookingError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"❌ Database error, transaction rolled back: {exc}")
        raise StorageFailure("Storage error, booking state unknown") from exc


@contextmanager
def read_only(db: Session):
    """Surface database errors during a read as StorageFailure"""
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"❌ Database error while reading: {exc}")
        raise StorageFailure("Storage error, please retry") from exc
