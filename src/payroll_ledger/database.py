"""Database connection and session management."""

from __future__ import annotations

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from payroll_ledger.config import get_settings
from payroll_ledger.models import Base


def get_engine(database_url: str | None = None, echo: bool = False) -> Engine:
    """Create database engine.

    An in-memory SQLite URL shares one connection across threads so the
    schema survives between sessions.
    """
    url = database_url or get_settings().database_url
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)

    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Session factory used by the ledger; objects stay readable after commit."""
    return sessionmaker(engine, expire_on_commit=False, autoflush=False)


def create_schema(engine: Engine) -> None:
    """Create all ledger tables that do not exist yet."""
    Base.metadata.create_all(engine)

