"""Engine and session factories.

The application writes every timestamp in UTC; MySQL connections are pinned
to UTC as well so server-side time functions agree with stored values.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.config import get_settings

settings = get_settings()


def build_engine(url: str) -> Engine:
    options: dict = {"pool_pre_ping": True}
    # SQLite uses a single-connection pool without sizing options.
    if not url.startswith("sqlite"):
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
        )
    new_engine = create_engine(url, echo=settings.debug, future=True, **options)
    if new_engine.dialect.name == "mysql":
        event.listen(new_engine, "connect", _use_utc)
    return new_engine


def _use_utc(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("SET time_zone = '+00:00'")
    finally:
        cursor.close()


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


def get_db() -> Iterator[Session]:
    """Request-scoped session; uncommitted work is rolled back on close."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_session() -> Iterator[Session]:
    """Short-lived session for the events socket, opened per lookup."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
