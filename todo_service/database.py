"""SQLAlchemy async database configuration for the todo service.

The engine and session factory are built from :class:`Settings` by the
application lifespan instead of at import time, so tests and the real
server can point at different databases.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncAttrs,
    AsyncEngine,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from todo_service.config import Settings


class Base(AsyncAttrs, DeclarativeBase):
    """Declarative base for all ORM models."""


def _is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (url.endswith("://") or ":memory:" in url)


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine described by ``settings``.

    In-memory SQLite is refused: pooled connections would each get their
    own empty database, and a single shared connection lets concurrent
    sessions roll back each other's writes.
    """
    url = settings.database_url
    if _is_memory_sqlite(url):
        raise RuntimeError("in-memory SQLite is not supported, use a file database")
    return create_async_engine(url, echo=settings.db_echo)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Create missing tables."""
    # models must be imported so their tables are registered on Base
    from todo_service import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
