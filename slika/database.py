"""Database layer utilities for SQLAlchemy-backed persistence."""
from __future__ import annotations

from typing import Any, Generator

from sqlalchemy import Insert, create_engine, insert
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import get_settings

settings = get_settings()

engine: Engine = create_engine(settings.database_url, pool_pre_ping=True, future=True)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True,
    expire_on_commit=False,
)

Base = declarative_base()


def get_engine() -> Engine:
    """Return the configured SQLAlchemy engine."""
    return engine


def get_session() -> Generator[Session, None, None]:
    """FastAPI dependency that yields a SQLAlchemy session per request."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def create_session() -> Session:
    """Return a new SQLAlchemy session for scripts and operator tools."""
    return SessionLocal()


def dialect_name(db: Session) -> str:
    """Name of the SQL dialect behind ``db`` (``postgresql``, ``sqlite`` ...)."""
    return db.get_bind().dialect.name


def insert_or_ignore(db: Session, model: Any) -> Insert:
    """INSERT for ``model`` that silently skips rows violating a unique constraint."""

    dialect = dialect_name(db)
    if dialect == "postgresql":
        return postgresql.insert(model).on_conflict_do_nothing()
    if dialect == "sqlite":
        return sqlite.insert(model).on_conflict_do_nothing()
    return insert(model).prefix_with("IGNORE")


def init_db() -> None:
    """Create any missing tables."""
    # Models must be registered on the metadata before create_all runs.
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


__all__ = [
    "Base",
    "SessionLocal",
    "get_engine",
    "get_session",
    "create_session",
    "dialect_name",
    "insert_or_ignore",
    "init_db",
]
