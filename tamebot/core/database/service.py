"""
DatabaseService: the process-wide async engine (asyncpg) and its sessions.

Two ways in:

- ``get_session()`` for reads; nothing is committed.
- ``get_transaction()`` for writes; commits on clean exit, rolls back on
  any exception and re-raises it.

Stamina, token and encounter writes lock their rows inside
``get_transaction()`` so concurrent button presses serialize.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from tamebot.core.config.config import Config
from tamebot.core.database.base import Base
from tamebot.core.logging.logger import get_logger

logger = get_logger(__name__)


class DatabaseInitializationError(RuntimeError):
    """The engine could not be built from the current configuration."""


class DatabaseNotInitializedError(RuntimeError):
    """A session was requested before ``initialize()``."""


def _engine_options() -> dict[str, Any]:
    # Tests run each case on a fresh event loop; pooled asyncpg connections
    # cannot cross loops.
    if Config.is_testing():
        return {"echo": Config.DATABASE_ECHO, "poolclass": NullPool}
    return {
        "echo": Config.DATABASE_ECHO,
        "pool_size": Config.DATABASE_POOL_SIZE,
        "max_overflow": Config.DATABASE_MAX_OVERFLOW,
        "pool_recycle": Config.DATABASE_POOL_RECYCLE,
        "pool_timeout": Config.DATABASE_POOL_TIMEOUT,
        "pool_pre_ping": True,
    }


def _is_domain_error(exc: BaseException) -> bool:
    return getattr(exc, "error_code", None) is not None


class DatabaseService:
    """Class-level holder for the engine; initialize() and shutdown() are idempotent."""

    _engine: Optional[AsyncEngine] = None
    _sessions: Optional[async_sessionmaker[AsyncSession]] = None
    _postgres: bool = False
    _lock: asyncio.Lock = asyncio.Lock()

    @classmethod
    async def initialize(cls, url: Optional[str] = None) -> None:
        """
        Build the engine for ``url`` (default ``Config.DATABASE_URL``).

        Raises:
            DatabaseInitializationError: when the URL is empty or the engine
                cannot be created.
        """
        async with cls._lock:
            if cls._engine is not None:
                return

            database_url = url or Config.DATABASE_URL
            if not database_url:
                raise DatabaseInitializationError("DATABASE_URL is not configured")

            try:
                cls._engine = create_async_engine(database_url, **_engine_options())
            except Exception as exc:
                logger.error(
                    "Could not create database engine",
                    extra={"error_type": type(exc).__name__},
                    exc_info=True,
                )
                raise DatabaseInitializationError(str(exc)) from exc

            cls._sessions = async_sessionmaker(cls._engine, expire_on_commit=False)
            cls._postgres = database_url.startswith("postgresql")
            logger.info(
                "Database engine ready",
                extra={"scheme": database_url.split(":", 1)[0], "testing": Config.is_testing()},
            )

    @classmethod
    async def create_all(cls) -> None:
        """Create every mapped table. Development and tests only."""
        engine = cls._require()[0]

        import tamebot.database.models  # noqa: F401

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Schema ensured", extra={"tables": sorted(Base.metadata.tables)})

    @classmethod
    async def shutdown(cls) -> None:
        async with cls._lock:
            engine, cls._engine, cls._sessions = cls._engine, None, None
            if engine is not None:
                await engine.dispose()
                logger.info("Database engine disposed")

    @classmethod
    def _require(cls) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
        if cls._engine is None or cls._sessions is None:
            raise DatabaseNotInitializedError(
                "Call DatabaseService.initialize() before opening sessions"
            )
        return cls._engine, cls._sessions

    @classmethod
    @asynccontextmanager
    async def _open(cls) -> AsyncIterator[AsyncSession]:
        sessions = cls._require()[1]
        async with sessions() as session:
            if cls._postgres:
                await session.execute(
                    text(f"SET LOCAL statement_timeout = {int(Config.DATABASE_STATEMENT_TIMEOUT_MS)}")
                )
            yield session

    @classmethod
    @asynccontextmanager
    async def get_session(cls) -> AsyncIterator[AsyncSession]:
        async with cls._open() as session:
            yield session

    @classmethod
    @asynccontextmanager
    async def get_transaction(cls) -> AsyncIterator[AsyncSession]:
        """
        Atomic unit of work. Do not commit or roll back inside the block.

            async with DatabaseService.get_transaction() as session:
                account = await session.get(UserAccount, pk, with_for_update=True)
                account.tokens -= 20
        """
        started = time.perf_counter()
        async with cls._open() as session:
            try:
                yield session
                await session.commit()
            except Exception as exc:
                await session.rollback()
                expected = _is_domain_error(exc)
                (logger.info if expected else logger.error)(
                    "Transaction rolled back",
                    extra={
                        "error_type": type(exc).__name__,
                        "duration_ms": round((time.perf_counter() - started) * 1000.0, 2),
                    },
                    exc_info=not expected,
                )
                raise
