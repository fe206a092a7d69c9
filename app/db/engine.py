"""Async SQLAlchemy engine (asyncpg) and the unit-of-work scope.

With DATABASE_URL unset, ``engine`` and ``async_session_factory`` are
None and callers use the in-memory Store instead.  Nothing here opens a
connection at import time; the pool connects lazily on first use.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import SETTINGS

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for the tables in app/db/tables.py."""


if SETTINGS.database_url:
    engine = create_async_engine(
        SETTINGS.database_url,
        echo=SETTINGS.is_dev,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )
    # expire_on_commit=False: rows mapped to domain objects after commit
    # must not trigger lazy reloads outside the session.
    async_session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
else:
    engine = None
    async_session_factory = None


@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """Commit on success, roll back on exception.

    One scope per request (the store dependency) and per worker task, so
    an enrollment update and the certificate row it triggers land together.
    """
    if async_session_factory is None:
        raise RuntimeError("DATABASE_URL is not configured; no database session available")
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def lifespan_db():
    """Dispose the connection pool on shutdown."""
    if engine is None:
        logger.info("No DATABASE_URL configured; using in-memory repositories")
        yield
        return

    logger.info("Database engine created: %s", engine.url.render_as_string(hide_password=True))
    yield
    await engine.dispose()
    logger.info("Database engine disposed")
