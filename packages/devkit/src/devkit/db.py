"""Async PostgreSQL access for GigHub services.

Every connection runs in the platform timezone, and sessions that hit a
dropped connection are retried on a fresh engine with exponential backoff.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

from sqlalchemy import MetaData, event, text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.ext.asyncio import create_async_engine as _create_async_engine
from sqlalchemy.orm import DeclarativeBase

from devkit.timezone import PLATFORM_TIMEZONE

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Base(DeclarativeBase):
    """Declarative base shared by every service's ORM tables."""


def normalize_postgres_dsn(dsn: str) -> str:
    for prefix in ("postgresql://", "postgres://"):
        if dsn.startswith(prefix):
            return "postgresql+psycopg://" + dsn[len(prefix) :]
    return dsn


def create_async_engine(dsn: str) -> AsyncEngine:
    engine = _create_async_engine(
        normalize_postgres_dsn(dsn),
        pool_pre_ping=True,
        pool_recycle=1800,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _pin_timezone(dbapi_connection, _record) -> None:  # type: ignore[no-untyped-def]
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute(f"SET TIME ZONE '{PLATFORM_TIMEZONE}'")
        finally:
            cursor.close()

    return engine


def is_transient_db_error(exc: Exception) -> bool:
    if isinstance(exc, OperationalError):
        return True
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


class AsyncDatabaseManager:
    def __init__(
        self,
        dsn: str,
        *,
        max_retries: int = 3,
        base_delay_seconds: float = 0.2,
        sleep_fn: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._dsn = normalize_postgres_dsn(dsn)
        self._max_retries = max_retries
        self._base_delay_seconds = base_delay_seconds
        self._sleep_fn = sleep_fn
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("database manager is not connected")
        return self._engine

    async def connect(self) -> None:
        if self._engine is None:
            self._engine = create_async_engine(self._dsn)
            self._sessions = async_sessionmaker(self._engine, expire_on_commit=False)
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def disconnect(self) -> None:
        engine, self._engine, self._sessions = self._engine, None, None
        if engine is not None:
            await engine.dispose()

    async def prepare_schema(self, schema_name: str, metadata: MetaData) -> None:
        async with self.engine.begin() as conn:
            await conn.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{schema_name}"'))
            await conn.run_sync(metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """One transaction: committed on exit, rolled back if the body raises."""
        if self._sessions is None:
            await self.connect()
        assert self._sessions is not None
        async with self._sessions.begin() as session:
            yield session

    def retry_delay(self, attempt: int) -> float:
        return self._base_delay_seconds * (2 ** (attempt - 1))

    async def run_with_session(self, fn: Callable[[AsyncSession], Awaitable[T]]) -> T:
        for attempt in range(1, self._max_retries):
            try:
                async with self.session() as session:
                    return await fn(session)
            except Exception as exc:
                if not is_transient_db_error(exc):
                    raise
                logger.warning(
                    "db_session_retry",
                    extra={"component": "devkit.db", "attempt": attempt, "delay_seconds": self.retry_delay(attempt)},
                )
            # the pool may hold dead connections; start over on a new engine
            await self.disconnect()
            await self._sleep_fn(self.retry_delay(attempt))
        async with self.session() as session:
            return await fn(session)
