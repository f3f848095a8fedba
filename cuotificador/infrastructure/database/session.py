"""Database session management and transaction scope"""

from contextlib import contextmanager
from typing import Iterator
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from cuotificador.config import settings
from cuotificador.infrastructure.database.models import Base


def build_engine(database_url: str, **engine_kwargs):
    if database_url.startswith("sqlite"):
        # FastAPI runs sync endpoints in a threadpool
        engine = create_engine(database_url, connect_args={"check_same_thread": False}, **engine_kwargs)

        # pysqlite defers BEGIN, which breaks SAVEPOINT; let SQLAlchemy emit it
        @event.listens_for(engine, "connect")
        def _disable_pysqlite_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, "begin")
        def _emit_begin(conn):
            conn.exec_driver_sql("BEGIN")

        return engine

    return create_engine(
        database_url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
        **engine_kwargs,
    )


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """Create missing tables"""
    Base.metadata.create_all(bind=engine)


def get_db() -> Iterator[Session]:
    """Dependency injection for database sessions"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Commit on success, roll everything back on any exception"""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
