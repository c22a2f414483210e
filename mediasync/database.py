"""Database layer utilities for the SQLAlchemy-backed document store."""
from __future__ import annotations

from typing import Callable

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import get_settings

SessionFactory = Callable[[], Session]

Base = declarative_base()


def build_engine(database_url: str) -> Engine:
    """Create an engine, sharing a single connection for in-memory SQLite."""

    options: dict[str, object] = {"pool_pre_ping": True}
    if database_url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url:
            options["poolclass"] = StaticPool
    return create_engine(database_url, **options)


def build_session_factory(bind: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=bind, autoflush=False, expire_on_commit=False)


# Load settings (DATABASE_URL and others come from env/.env)
settings = get_settings()

engine: Engine = build_engine(settings.database_url)

SessionLocal = build_session_factory(engine)


def get_engine() -> Engine:
    """Return the configured SQLAlchemy engine."""
    return engine


def get_session_factory() -> SessionFactory:
    """FastAPI dependency returning the factory the sync services open sessions with."""
    return SessionLocal


def init_db(bind: Engine | None = None) -> None:
    """Initialise database schema by creating tables when missing."""
    # Import models to ensure they are registered on the metadata before create_all runs.
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


__all__ = [
    "Base",
    "SessionFactory",
    "build_engine",
    "build_session_factory",
    "get_engine",
    "get_session_factory",
    "init_db",
]
