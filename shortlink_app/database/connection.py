"""
Database engine, session factory and store error translation.

Both tables (short_urls and click_events) live in the same relational store.
Every store call is bounded by ``settings.db_timeout_seconds``.
"""

from contextlib import contextmanager
from functools import wraps
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from shortlink_app.config import settings
from shortlink_app.exceptions import UnavailableError


Base = declarative_base()


def make_engine(database_url: str, timeout_seconds: float = 5.0) -> Engine:
    """
    Create an engine whose connections give up after ``timeout_seconds``.

    SQLite: busy timeout on locked database files.
    PostgreSQL: connect timeout plus per-statement timeout.
    """
    connect_args = {}
    engine_kwargs = {"pool_pre_ping": True}

    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": timeout_seconds}
    elif database_url.startswith("postgresql"):
        connect_args = {
            "connect_timeout": max(1, int(timeout_seconds)),
            "options": f"-c statement_timeout={int(timeout_seconds * 1000)}",
        }
        engine_kwargs["pool_timeout"] = timeout_seconds

    return create_engine(database_url, connect_args=connect_args, **engine_kwargs)


engine = make_engine(settings.database_url, settings.db_timeout_seconds)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding one session per request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def store_errors(db: Session):
    """
    Translate connectivity failures into UnavailableError.

    The session is rolled back so it stays usable for the caller.
    No retry happens here.
    """
    try:
        yield
    except (OperationalError, PoolTimeoutError) as e:
        db.rollback()
        raise UnavailableError("Store unavailable") from e


def translate_store_errors(method):
    """Decorator form of ``store_errors`` for service methods holding ``self.db``"""

    @wraps(method)
    def wrapper(self, *args, **kwargs):
        with store_errors(self.db):
            return method(self, *args, **kwargs)

    return wrapper
