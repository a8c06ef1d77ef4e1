from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import fields, replace
import logging
from typing import TypeVar

from devkit.db import AsyncDatabaseManager, Base, create_all_tables, create_schema_if_not_exists, is_postgres_dsn
from sqlalchemy import Float, Integer, String, Text, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from seminar_core.exceptions import StoreFailureError
from seminar_core.filters import apply_filters, build_conditions, folded_values
from seminar_core.models import CountryOption, FilterState, SeminarRecord

T = TypeVar("T")
logger = logging.getLogger(__name__)

# PostgreSQL keeps the table in its own schema; SQLite has no schemas.
SEMINAR_DB_SCHEMA = "seminar"
_RECORD_FIELDS = tuple(item.name for item in fields(SeminarRecord))


def schema_for_dsn(database_url: str) -> str | None:
    return SEMINAR_DB_SCHEMA if is_postgres_dsn(database_url) else None


class SeminarORM(Base):
    __tablename__ = "seminars"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    instructor: Mapped[str] = mapped_column(String(255), nullable=False)
    instructor_folded: Mapped[str] = mapped_column("instructorFolded", String(255), nullable=False)
    instructor_rank: Mapped[str | None] = mapped_column("instructorRank", String(64), nullable=True)
    organization: Mapped[str | None] = mapped_column(String(255), index=True, nullable=True)
    style: Mapped[str | None] = mapped_column(String(64), nullable=True)
    start_date: Mapped[str] = mapped_column("startDate", String(10), index=True, nullable=False)
    end_date: Mapped[str] = mapped_column("endDate", String(10), index=True, nullable=False)
    venue: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str] = mapped_column(String(128), nullable=False)
    country: Mapped[str] = mapped_column(String(128), nullable=False)
    country_code: Mapped[str] = mapped_column("countryCode", String(8), index=True, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    longitude: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    level: Mapped[str | None] = mapped_column(String(16), nullable=True)
    registration_url: Mapped[str | None] = mapped_column("registrationUrl", String(500), nullable=True)
    contact_email: Mapped[str | None] = mapped_column("contactEmail", String(255), nullable=True)
    fee: Mapped[str | None] = mapped_column(String(128), nullable=True)
    source: Mapped[str] = mapped_column(String(64), nullable=False)
    source_url: Mapped[str | None] = mapped_column("sourceUrl", String(500), nullable=True)
    last_scraped: Mapped[str] = mapped_column("lastScraped", String(64), nullable=False)
    manual_override: Mapped[int] = mapped_column("manualOverride", Integer, nullable=False, default=0)


class SeminarStore:
    """Seminar records keyed by id: a process-local dict, or the ``seminars`` table when a DSN is given."""

    def __init__(self, database_url: str | None = None) -> None:
        self._items: dict[str, SeminarRecord] = {}
        self._db = (
            AsyncDatabaseManager(database_url, schema=schema_for_dsn(database_url)) if database_url else None
        )
        self._orm_ready = False

    @property
    def backend(self) -> str:
        return "memory" if self._db is None else "sql"

    @property
    def schema(self) -> str | None:
        return self._db.schema if self._db is not None else None

    async def close(self) -> None:
        if self._db is not None:
            await self._db.disconnect()

    async def insert(self, record: SeminarRecord) -> SeminarRecord:
        if self._db is None:
            if record.id in self._items:
                raise StoreFailureError(f"duplicate seminar id {record.id}")
            self._items[record.id] = replace(record)
            return record

        async def _run(session: AsyncSession) -> SeminarRecord:
            row = SeminarORM()
            self._apply(row, record)
            session.add(row)
            await session.flush()
            return self._to_entity(row)

        return await self._execute(_run)

    async def get(self, seminar_id: str) -> SeminarRecord | None:
        if self._db is None:
            item = self._items.get(seminar_id)
            return replace(item) if item else None

        async def _run(session: AsyncSession) -> SeminarRecord | None:
            row = await session.get(SeminarORM, seminar_id)
            return self._to_entity(row) if row else None

        return await self._execute(_run)

    async def update(self, record: SeminarRecord) -> SeminarRecord | None:
        if self._db is None:
            if record.id not in self._items:
                return None
            self._items[record.id] = replace(record)
            return record

        async def _run(session: AsyncSession) -> SeminarRecord | None:
            row = await session.get(SeminarORM, record.id)
            if row is None:
                return None
            self._apply(row, record)
            return self._to_entity(row)

        return await self._execute(_run)

    async def delete(self, seminar_id: str) -> bool:
        if self._db is None:
            return self._items.pop(seminar_id, None) is not None

        async def _run(session: AsyncSession) -> bool:
            result = await session.execute(delete(SeminarORM).where(SeminarORM.id == seminar_id))
            return bool(result.rowcount)

        return await self._execute(_run)

    async def list_seminars(self, filters: FilterState) -> list[SeminarRecord]:
        if self._db is None:
            matched = apply_filters(self._items.values(), filters)
            return [replace(item) for item in sorted(matched, key=lambda item: (item.start_date, item.id))]

        async def _run(session: AsyncSession) -> list[SeminarRecord]:
            stmt = (
                select(SeminarORM)
                .where(*build_conditions(filters, SeminarORM))
                .order_by(SeminarORM.start_date, SeminarORM.id)
            )
            rows = (await session.scalars(stmt)).all()
            return [self._to_entity(row) for row in rows]

        return await self._execute(_run)

    async def countries(self) -> list[CountryOption]:
        if self._db is None:
            pairs = {(item.country, item.country_code) for item in self._items.values()}
            return [CountryOption(country=country, country_code=code) for country, code in sorted(pairs)]

        async def _run(session: AsyncSession) -> list[CountryOption]:
            stmt = (
                select(SeminarORM.country, SeminarORM.country_code)
                .distinct()
                .order_by(SeminarORM.country, SeminarORM.country_code)
            )
            rows = (await session.execute(stmt)).all()
            return [CountryOption(country=country, country_code=code) for country, code in rows]

        return await self._execute(_run)

    async def count(self) -> int:
        if self._db is None:
            return len(self._items)

        async def _run(session: AsyncSession) -> int:
            return int((await session.scalar(select(func.count()).select_from(SeminarORM))) or 0)

        return await self._execute(_run)

    async def _execute(self, fn: Callable[[AsyncSession], Awaitable[T]]) -> T:
        if self._db is None:
            raise RuntimeError("seminar store has no database configured")
        try:
            await self._ensure_orm_ready()
            return await self._db.run_with_session(fn)
        except SQLAlchemyError as exc:
            logger.error("seminar_store_failure", extra={"component": "store", "error": str(exc)})
            raise StoreFailureError("seminar store operation failed") from exc

    async def _ensure_orm_ready(self) -> None:
        if self._db is None or self._orm_ready:
            return

        await self._db.connect()
        if self._db.schema:
            await create_schema_if_not_exists(self._db.engine, self._db.schema)
        await create_all_tables(self._db.engine, Base.metadata)
        self._orm_ready = True

    @staticmethod
    def _apply(row: SeminarORM, record: SeminarRecord) -> None:
        for name in _RECORD_FIELDS:
            value = getattr(record, name)
            setattr(row, name, int(value) if name == "manual_override" else value)
        for name, value in folded_values(record).items():
            setattr(row, name, value)

    @staticmethod
    def _to_entity(row: SeminarORM) -> SeminarRecord:
        values = {name: getattr(row, name) for name in _RECORD_FIELDS}
        values["manual_override"] = bool(values["manual_override"])
        return SeminarRecord(**values)
