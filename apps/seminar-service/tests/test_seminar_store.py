from __future__ import annotations

from dataclasses import replace

import pytest

from seminar_core.exceptions import StoreFailureError
from seminar_core.models import CountryOption, FilterState, SeminarRecord
from seminar_service.store import SEMINAR_DB_SCHEMA, SeminarORM, SeminarStore


def _record(seminar_id: str, **overrides) -> SeminarRecord:
    values = {
        "id": seminar_id,
        "title": "Spring Seminar",
        "instructor": "Morihiro Ueshiba",
        "start_date": "2026-03-10",
        "end_date": "2026-03-12",
        "city": "Tokyo",
        "country": "Japan",
        "country_code": "JP",
        "latitude": 35.68,
        "longitude": 139.69,
        "source": "manual",
        "last_scraped": "2026-10-19T09:00:00.000Z",
        "manual_override": True,
    }
    values.update(overrides)
    return SeminarRecord(**values)


def _sqlite_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'seminars.db'}"


@pytest.mark.asyncio
async def test_sql_store_round_trips_records(tmp_path) -> None:
    store = SeminarStore(_sqlite_url(tmp_path))
    try:
        assert store.backend == "sql"
        ingested = _record("feed-1", source="aikido-feed", source_url="https://feed.example.com/1", manual_override=False)
        await store.insert(ingested)
        await store.insert(_record("sem-1", organization="Aikikai", level="all", fee="EUR 40"))

        loaded = await store.get("feed-1")
        manual = await store.get("sem-1")

        assert loaded == ingested
        assert loaded.manual_override is False
        assert manual.manual_override is True
        assert manual.fee == "EUR 40"
        assert await store.get("missing") is None
        assert await store.count() == 2
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_sql_store_update_and_delete(tmp_path) -> None:
    store = SeminarStore(_sqlite_url(tmp_path))
    try:
        await store.insert(_record("sem-1"))

        updated = await store.update(replace(_record("sem-1"), title="Renamed", venue="Hombu Dojo"))
        missing = await store.update(_record("sem-2"))

        assert updated.title == "Renamed"
        assert (await store.get("sem-1")).venue == "Hombu Dojo"
        assert missing is None
        assert await store.count() == 1

        assert await store.delete("sem-1") is True
        assert await store.delete("sem-1") is False
        assert await store.count() == 0
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_sql_store_duplicate_id_is_store_failure(tmp_path) -> None:
    store = SeminarStore(_sqlite_url(tmp_path))
    try:
        await store.insert(_record("sem-1"))

        with pytest.raises(StoreFailureError):
            await store.insert(_record("sem-1", title="Other"))

        assert (await store.get("sem-1")).title == "Spring Seminar"
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_memory_store_duplicate_id_is_store_failure() -> None:
    store = SeminarStore()
    await store.insert(_record("sem-1"))

    with pytest.raises(StoreFailureError):
        await store.insert(_record("sem-1"))


@pytest.mark.asyncio
async def test_memory_store_returns_copies() -> None:
    store = SeminarStore()
    record = _record("sem-1")
    await store.insert(record)

    loaded = await store.get("sem-1")
    loaded.title = "Mutated"

    assert (await store.get("sem-1")).title == "Spring Seminar"


@pytest.mark.asyncio
async def test_list_orders_by_start_date_then_id_on_both_backends(tmp_path) -> None:
    records = [
        _record("b", start_date="2026-03-10", end_date="2026-03-11"),
        _record("c", start_date="2026-01-05", end_date="2026-01-06"),
        _record("a", start_date="2026-03-10", end_date="2026-03-10"),
    ]
    for store in (SeminarStore(), SeminarStore(_sqlite_url(tmp_path))):
        try:
            for record in records:
                await store.insert(record)

            listed = await store.list_seminars(FilterState())

            assert [item.id for item in listed] == ["c", "a", "b"]
        finally:
            await store.close()


@pytest.mark.asyncio
async def test_countries_are_distinct_pairs_on_both_backends(tmp_path) -> None:
    records = [
        _record("1", country="Japan", country_code="JP"),
        _record("2", country="Japan", country_code="JP"),
        _record("3", country="Italy", country_code="IT"),
        _record("4", country="Germany", country_code="DE"),
    ]
    expected = [
        CountryOption(country="Germany", country_code="DE"),
        CountryOption(country="Italy", country_code="IT"),
        CountryOption(country="Japan", country_code="JP"),
    ]
    for store in (SeminarStore(), SeminarStore(_sqlite_url(tmp_path))):
        try:
            for record in records:
                await store.insert(record)

            assert await store.countries() == expected
        finally:
            await store.close()


@pytest.mark.asyncio
async def test_unreachable_database_is_store_failure(tmp_path) -> None:
    store = SeminarStore(f"sqlite:///{tmp_path / 'missing-dir' / 'seminars.db'}")
    try:
        with pytest.raises(StoreFailureError):
            await store.get("sem-1")
    finally:
        await store.close()


def test_store_schema_follows_its_own_dsn(monkeypatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite:///./ignored.db")

    assert SeminarStore("postgresql://u:p@localhost/seminars").schema == SEMINAR_DB_SCHEMA
    assert SeminarStore("sqlite:///./seminars.db").schema is None
    assert SeminarStore().schema is None
    assert SeminarORM.__table__.schema is None


@pytest.mark.asyncio
async def test_sqlite_store_ignores_postgres_database_url_in_env(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@localhost/elsewhere")
    store = SeminarStore(_sqlite_url(tmp_path))
    try:
        await store.insert(_record("sem-1"))

        assert await store.count() == 1
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_sql_store_persists_folded_instructor(tmp_path) -> None:
    store = SeminarStore(_sqlite_url(tmp_path))
    try:
        await store.insert(_record("sem-1", instructor="Émile DUPONT"))
        await store.update(_record("sem-1", instructor="Ёжик Иванов"))

        listed = await store.list_seminars(FilterState(instructor="ЁЖИК"))
        stale = await store.list_seminars(FilterState(instructor="émile"))

        assert [item.id for item in listed] == ["sem-1"]
        assert stale == []
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_sql_execution_without_database_raises_runtime_error() -> None:
    async def _count(_session) -> int:
        return 0

    with pytest.raises(RuntimeError):
        await SeminarStore()._execute(_count)
