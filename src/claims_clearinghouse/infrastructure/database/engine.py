"""Async database engine and session management.

Provides:
    - _get_engine: The SQLAlchemy async engine (lazy singleton).
    - _get_session_factory: A sessionmaker bound to the engine.
    - get_async_session: FastAPI dependency that yields a read session per request.
    - read_session: A read-only unit of execution that never commits.
    - serialized_session: One atomic, serialized unit of execution for writes.
    - init_db / close_db: Lifecycle hooks for FastAPI's lifespan.

Write calls are fully serialized: the execution lock is held from the first
read of a claim until its transaction has committed or rolled back, so no two
calls ever interleave their effects. When every session shares a single
connection (SQLite on a StaticPool), reads take the same lock: they would
otherwise observe, commit or roll back a write that is still in flight.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from claims_clearinghouse.config import get_settings
from claims_clearinghouse.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = get_logger(__name__)

# Module-level singletons (initialized lazily)
_engine = None
_session_factory = None
_execution_lock: asyncio.Lock | None = None


def _get_engine():
    """Get or create the async engine (lazy singleton)."""
    global _engine
    if _engine is None:
        settings = get_settings()
        if settings.is_sqlite:
            # One shared connection so an in-memory database survives across sessions
            _engine = create_async_engine(
                settings.database_url,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
                echo=settings.db_echo_sql,
            )
        else:
            _engine = create_async_engine(
                settings.database_url,
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_timeout=settings.db_pool_timeout,
                pool_pre_ping=True,
                echo=settings.db_echo_sql,
            )
        logger.info("database.engine_created", sqlite=settings.is_sqlite)
    return _engine


def _get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory (lazy singleton)."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=_get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


def _get_execution_lock() -> asyncio.Lock:
    global _execution_lock
    if _execution_lock is None:
        _execution_lock = asyncio.Lock()
    return _execution_lock


def _shares_connection(factory: async_sessionmaker[AsyncSession]) -> bool:
    """True when every session of `factory` runs on the same DBAPI connection."""
    bind = factory.kw.get("bind")
    return bind is not None and isinstance(bind.sync_engine.pool, StaticPool)


@asynccontextmanager
async def read_session(
    factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a session for read-only work.

    Nothing is ever committed; the transaction is rolled back on exit. On a
    shared connection the execution lock is held for the whole block.
    """
    factory = factory or _get_session_factory()
    if _shares_connection(factory):
        async with _get_execution_lock():
            async with factory() as session:
                yield session
    else:
        async with factory() as session:
            yield session


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields a read-only database session."""
    async with read_session() as session:
        yield session


@asynccontextmanager
async def serialized_session(
    factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncGenerator[AsyncSession, None]:
    """Run one write call as a single atomic unit, admitted one at a time.

    Commits when the block exits normally; rolls back every effect (claim
    rows, ledger balances, events) when it raises.
    """
    factory = factory or _get_session_factory()
    async with _get_execution_lock():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


async def init_db() -> None:
    """Create tables if they don't exist.

    Called during FastAPI's lifespan startup. Outside development (and outside
    SQLite, which is always created in place) the schema is expected to exist.
    """
    from claims_clearinghouse.infrastructure.database.orm_models import Base

    engine = _get_engine()
    settings = get_settings()

    if settings.is_development or settings.is_sqlite:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("database.tables_created")
    else:
        logger.info("database.skipping_create_all", reason="not in development mode")


async def close_db() -> None:
    """Dispose of the database engine. Called during FastAPI's lifespan shutdown."""
    global _engine, _session_factory, _execution_lock
    if _engine is not None:
        await _engine.dispose()
        logger.info("database.engine_disposed")
        _engine = None
        _session_factory = None
        _execution_lock = None
