"""Database engine and session management for the persistence adapter."""

from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ridemetrics.config import get_settings
from ridemetrics.models.base import Base

settings = get_settings()

IN_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def build_engine(database_url: Optional[str] = None, **kwargs) -> Engine:
    """
    Create an engine for ``database_url`` (default ``Settings.DATABASE_URL``).

    SQLite connections may be shared with worker threads of the calling
    application, and in-memory databases keep a single connection so every
    session sees the same tables.
    """
    url = database_url or settings.DATABASE_URL

    connect_args = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        if url in IN_MEMORY_URLS:
            kwargs.setdefault("poolclass", StaticPool)

    return create_engine(url, connect_args=connect_args, echo=False, **kwargs)


engine = build_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(bind: Optional[Engine] = None) -> None:
    """Create all tables on ``bind`` (default engine)."""
    # Register every model with Base before create_all
    from ridemetrics.models import (  # noqa: F401
        Activity,
        Athlete,
        FitnessMetric,
        PowerCurveRecord,
    )
    Base.metadata.create_all(bind=bind or engine)
