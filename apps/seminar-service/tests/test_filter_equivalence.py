from __future__ import annotations

import itertools

import pytest

from seminar_core.filters import apply_filters
from seminar_core.models import FilterState, SeminarRecord
from seminar_service.store import SeminarStore

RECORDS = [
    ("s1", "Morihiro Ueshiba", "Aikikai", "all", "JP", "2026-03-10", "2026-03-12"),
    ("s2", "Morihiro Ueshiba", "Aikikai", "advanced", "JP", "2026-04-30", "2026-04-30"),
    ("s3", "Morihiro Saito", "Iwama Ryu", "beginner", "IT", "2026-03-01", "2026-03-09"),
    ("s4", "Christian Tissier", None, None, "FR", "2026-03-13", "2026-05-01"),
    ("s5", "Nobuyoshi Tamura", "Aikikai", None, "FR", "2026-02-01", "2026-06-30"),
    ("s6", "Saito 100% Iwama", None, "all", "jp", "2026-03-12", "2026-03-12"),
    ("s7", "Émile Dupont", "Aikikai", "all", "FR", "2026-03-11", "2026-03-14"),
    ("s8", "Ёжик Иванов", None, "advanced", "JP", "2026-04-01", "2026-04-03"),
    ("s9", "Hans Straße", "Aikikai", None, "JP", "2026-03-05", "2026-03-10"),
]

COUNTRIES = ("", "JP", "jp")
INSTRUCTORS = ("", "ueshiba", "SAITO", "%", "émile", "ÉMILE", "ёжик", "STRASSE")
ORGANIZATIONS = ("", "Aikikai")
LEVELS = ("", "all", "advanced")
START_DATES = ("", "2026-03-12")
END_DATES = ("", "2026-03-10", "2026-04-30")


def _records() -> list[SeminarRecord]:
    return [
        SeminarRecord(
            id=seminar_id,
            title=f"Seminar {seminar_id}",
            instructor=instructor,
            organization=organization,
            level=level,
            country_code=country_code,
            country=country_code,
            city="City",
            start_date=start_date,
            end_date=end_date,
            latitude=1.0,
            longitude=1.0,
            source="manual",
            last_scraped="2026-10-19T09:00:00.000Z",
            manual_override=True,
        )
        for seminar_id, instructor, organization, level, country_code, start_date, end_date in RECORDS
    ]


@pytest.mark.asyncio
async def test_sql_listing_matches_in_memory_predicate(tmp_path) -> None:
    records = _records()
    memory = SeminarStore()
    sql = SeminarStore(f"sqlite:///{tmp_path / 'seminars.db'}")
    try:
        for record in records:
            await memory.insert(record)
            await sql.insert(record)

        for values in itertools.product(COUNTRIES, INSTRUCTORS, ORGANIZATIONS, LEVELS, START_DATES, END_DATES):
            filters = FilterState(*values)
            expected = sorted(item.id for item in apply_filters(records, filters))

            from_memory = [item.id for item in await memory.list_seminars(filters)]
            from_sql = [item.id for item in await sql.list_seminars(filters)]

            assert sorted(from_memory) == expected, filters
            assert from_sql == from_memory, filters
    finally:
        await sql.close()


@pytest.mark.asyncio
async def test_percent_in_instructor_filter_is_literal(tmp_path) -> None:
    sql = SeminarStore(f"sqlite:///{tmp_path / 'seminars.db'}")
    try:
        for record in _records():
            await sql.insert(record)

        listed = await sql.list_seminars(FilterState(instructor="0% i"))

        assert [item.id for item in listed] == ["s6"]
    finally:
        await sql.close()


@pytest.mark.asyncio
async def test_non_ascii_instructor_filters_agree(tmp_path) -> None:
    records = _records()
    sql = SeminarStore(f"sqlite:///{tmp_path / 'seminars.db'}")
    try:
        for record in records:
            await sql.insert(record)

        for value, expected in (("émile", ["s7"]), ("ЁЖИК", ["s8"]), ("straße", ["s9"]), ("иванов", ["s8"])):
            filters = FilterState(instructor=value)

            assert [item.id for item in await sql.list_seminars(filters)] == expected
            assert [item.id for item in apply_filters(records, filters)] == expected
    finally:
        await sql.close()
