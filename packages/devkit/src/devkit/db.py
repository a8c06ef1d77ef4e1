from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from sqlalchemy import MetaData, event, text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine as _create_async_engine
from sqlalchemy.orm import DeclarativeBase

T = TypeVar("T")
logger = logging.getLogger(__name__)

_ASYNC_DRIVERS = {
    "postgresql://": "postgresql+psycopg://",
    "sqlite://": "sqlite+aiosqlite://",
}


class Base(DeclarativeBase):
    """Declarative base shared by every service table."""


def normalize_dsn(dsn: str) -> str:
    """Rewrite a bare ``postgresql://`` or ``sqlite://`` URL to its async driver."""
    for prefix, async_prefix in _ASYNC_DRIVERS.items():
        if dsn.startswith(prefix):
            return async_prefix + dsn[len(prefix):]
    return dsn


def is_postgres_dsn(dsn: str | None) -> bool:
    return bool(dsn) and normalize_dsn(dsn).startswith("postgresql")


def create_async_engine(dsn: str) -> AsyncEngine:
    normalized = normalize_dsn(dsn)
    options: dict[str, Any] = {"pool_pre_ping": True}
    if is_postgres_dsn(normalized):
        options["pool_recycle"] = 1800
    engine = _create_async_engine(normalized, **options)
    if is_postgres_dsn(normalized):
        # Record timestamps are UTC.
        _pin_session_timezone(engine, "UTC")
    return engine


def _pin_session_timezone(engine: AsyncEngine, zone: str) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _connection_record) -> None:  # type: ignore[no-untyped-def]
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute(f"SET TIME ZONE '{zone}'")
        finally:
            cursor.close()


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


def is_transient_db_error(exc: Exception) -> bool:
    if isinstance(exc, OperationalError):
        return True
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


async def create_schema_if_not_exists(engine: AsyncEngine, schema_name: str) -> None:
    async with engine.begin() as conn:
        await conn.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{schema_name}"'))


async def create_all_tables(engine: AsyncEngine, metadata: MetaData) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)


class AsyncDatabaseManager:
    """Lazily connected engine plus a commit-or-rollback unit of work.

    ``run_with_session`` replays the whole unit on a fresh engine when the
    failure looks transient, with exponential backoff between attempts.
    When ``schema`` is set, schema-less tables are routed into it through
    ``schema_translate_map`` for both DDL and queries.
    """

    def __init__(
        self,
        dsn: str,
        *,
        schema: str | None = None,
        max_retries: int = 3,
        base_delay_seconds: float = 0.2,
    ) -> None:
        self._dsn = normalize_dsn(dsn)
        self._schema = schema
        self._max_retries = max_retries
        self._base_delay_seconds = base_delay_seconds
        self._base_engine: AsyncEngine | None = None
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def dsn(self) -> str:
        return self._dsn

    @property
    def schema(self) -> str | None:
        return self._schema

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("database manager is not connected")
        return self._engine

    async def connect(self) -> None:
        if self._engine is None:
            self._base_engine = create_async_engine(self._dsn)
            self._engine = (
                self._base_engine.execution_options(schema_translate_map={None: self._schema})
                if self._schema
                else self._base_engine
            )
            self._session_factory = create_session_factory(self._engine)
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def disconnect(self) -> None:
        if self._base_engine is None:
            return
        await self._base_engine.dispose()
        self._base_engine = None
        self._engine = None
        self._session_factory = None

    async def reconnect(self) -> None:
        await self.disconnect()
        await self.connect()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        if self._session_factory is None:
            await self.connect()
        assert self._session_factory is not None
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def run_with_session(self, fn: Callable[[AsyncSession], Awaitable[T]]) -> T:
        for attempt in range(1, self._max_retries + 1):
            try:
                async with self.session() as session:
                    return await fn(session)
            except Exception as exc:
                if attempt >= self._max_retries or not is_transient_db_error(exc):
                    raise
                logger.warning("db_transient_error_retry", extra={"attempt": attempt, "error": str(exc)})
                await self.reconnect()
                await asyncio.sleep(self._base_delay_seconds * (2 ** (attempt - 1)))
        raise RuntimeError("max_retries must be at least 1")
