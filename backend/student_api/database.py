"""
Database connection and session management module.

Uses SQLAlchemy for ORM operations. Supports PostgreSQL (production/Docker)
and SQLite (local development and tests).

The engine and session factory live on an explicitly constructed
StudentStore, which the application creates at startup and disposes at
shutdown. Routes reach it through the get_store/get_db dependencies.
"""

import os
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker, DeclarativeBase
from sqlalchemy.pool import StaticPool
from fastapi import Depends, Request

from student_api.logging_config import get_logger, log_with_context

# Fallback to SQLite for local development when PostgreSQL is not available
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    "sqlite:///./students.db"
)

SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes")

logger = get_logger("db")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _is_sqlite_memory(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


def engine_options(url: str) -> dict:
    """
    Engine kwargs for the given database type.

    SQLite does not support pool_size, max_overflow, or pool_pre_ping.
    In-memory SQLite must share one connection, otherwise every pooled
    connection would see its own empty database.
    """
    options = {"echo": SQL_ECHO}

    if url.startswith("postgresql"):
        options.update({
            "pool_size": 10,
            "max_overflow": 20,
            "pool_pre_ping": True,
        })
    elif _is_sqlite(url):
        # FastAPI runs sync routes on a threadpool
        options["connect_args"] = {"check_same_thread": False}
        if _is_sqlite_memory(url):
            options["poolclass"] = StaticPool

    return options


def _set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class StudentStore:
    """
    Owns the SQLAlchemy engine and session factory for the students store.

    One instance is created per process (or per test) and shared by every
    request through FastAPI dependencies.
    """

    def __init__(self, database_url: str = DATABASE_URL, **engine_kwargs):
        self.database_url = database_url
        options = engine_options(database_url)
        options.update(engine_kwargs)
        self.engine: Engine = create_engine(database_url, **options)

        if _is_sqlite(database_url) and not _is_sqlite_memory(database_url):
            event.listen(self.engine, "connect", _set_sqlite_pragma)

        self.session_factory = sessionmaker(
            bind=self.engine, autoflush=False, expire_on_commit=False
        )

    @property
    def is_sqlite(self) -> bool:
        return _is_sqlite(self.database_url)

    def session(self) -> Session:
        """Open a new session. The caller is responsible for closing it."""
        return self.session_factory()

    def create_tables(self):
        """
        Create all tables directly (used for SQLite and tests).
        For PostgreSQL, use the Alembic migrations instead.
        """
        # Registers the models with Base.metadata
        import student_api.models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        log_with_context(logger, "INFO", "Tables created",
                         extra_data={"tables": sorted(Base.metadata.tables)})

    def drop_tables(self):
        Base.metadata.drop_all(bind=self.engine)

    def dispose(self):
        """Release every pooled connection."""
        self.engine.dispose()
        log_with_context(logger, "INFO", "Store connections disposed")


def get_store(request: Request) -> StudentStore:
    """FastAPI dependency returning the application's StudentStore."""
    return request.app.state.store


def get_db(store: StudentStore = Depends(get_store)):
    """
    FastAPI dependency that provides a database session.

    Yields a session and ensures it is closed after request completion,
    rolling back anything left uncommitted by a failed handler.
    """
    db = store.session()
    try:
        yield db
    finally:
        db.close()
