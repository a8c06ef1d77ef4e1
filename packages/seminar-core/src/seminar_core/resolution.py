"""Seminar write pipeline: validate, resolve missing coordinates, stamp provenance, persist."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import fields as dataclass_fields
from typing import Protocol
from uuid import uuid4

from devkit.timezone import now_utc_iso

from seminar_core.exceptions import ConflictError, NotFoundError, ValidationError
from seminar_core.geocode import GeocodeResolver, needs_geocoding
from seminar_core.models import (
    MANUAL_SOURCE,
    UNRESOLVED_DEGREES,
    Coordinate,
    CountryOption,
    FilterState,
    SeminarDraft,
    SeminarLevel,
    SeminarRecord,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "instructor", "start_date", "end_date", "city", "country", "country_code")
_LEVELS = {level.value for level in SeminarLevel}


class SeminarStoreLike(Protocol):
    async def insert(self, record: SeminarRecord) -> SeminarRecord: ...

    async def get(self, seminar_id: str) -> SeminarRecord | None: ...

    async def update(self, record: SeminarRecord) -> SeminarRecord | None: ...

    async def delete(self, seminar_id: str) -> bool: ...

    async def list_seminars(self, filters: FilterState) -> list[SeminarRecord]: ...

    async def countries(self) -> list[CountryOption]: ...


def _clean_optional(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, SeminarLevel):
        return value.value
    text = str(value).strip()
    return text or None


def validate_draft(draft: SeminarDraft) -> None:
    missing = [name for name in REQUIRED_FIELDS if not (getattr(draft, name) or "").strip()]
    if missing:
        raise ValidationError(missing)
    level = _clean_optional(draft.level)
    if level is not None and level not in _LEVELS:
        raise ValidationError(["level"], reason="unsupported value")


class SeminarResolutionPipeline:
    def __init__(
        self,
        store: SeminarStoreLike,
        geocoder: GeocodeResolver | None = None,
        *,
        clock: Callable[[], str] = now_utc_iso,
        id_factory: Callable[[], str] = lambda: str(uuid4()),
    ) -> None:
        self._store = store
        self._geocoder = geocoder
        self._clock = clock
        self._id_factory = id_factory

    async def resolve_coordinates(self, draft: SeminarDraft) -> Coordinate:
        """Return the coordinates to persist for ``draft``; never raises."""
        latitude = float(draft.latitude) if draft.latitude is not None else UNRESOLVED_DEGREES
        longitude = float(draft.longitude) if draft.longitude is not None else UNRESOLVED_DEGREES
        if self._geocoder is None or not needs_geocoding(draft.latitude, draft.longitude, draft.city, draft.country):
            return Coordinate(latitude=latitude, longitude=longitude)

        try:
            resolved = await self._geocoder.resolve(draft.city, draft.country)
        except Exception:
            logger.warning(
                "geocode_failed",
                extra={"component": "resolution", "city": draft.city, "country": draft.country},
                exc_info=True,
            )
            resolved = None
        if resolved is None:
            logger.info(
                "geocode_unresolved",
                extra={"component": "resolution", "city": draft.city, "country": draft.country},
            )
            return Coordinate(latitude=UNRESOLVED_DEGREES, longitude=UNRESOLVED_DEGREES)
        return resolved

    async def create(self, draft: SeminarDraft) -> SeminarRecord:
        validate_draft(draft)
        coordinate = await self.resolve_coordinates(draft)
        record = self._build_record(
            self._id_factory(),
            draft,
            coordinate,
            source=MANUAL_SOURCE,
            source_url=None,
            manual_override=True,
        )
        await self._store.insert(record)
        logger.info("seminar_created", extra={"seminar_id": record.id, "source": record.source})
        return await self.get(record.id)

    async def update(self, seminar_id: str, draft: SeminarDraft) -> SeminarRecord:
        validate_draft(draft)
        existing = await self._store.get(seminar_id)
        if existing is None:
            raise NotFoundError(seminar_id)
        coordinate = await self.resolve_coordinates(draft)
        record = self._build_record(
            seminar_id,
            draft,
            coordinate,
            source=existing.source,
            source_url=existing.source_url,
            manual_override=True,
        )
        if await self._store.update(record) is None:
            raise NotFoundError(seminar_id)
        logger.info(
            "seminar_updated",
            extra={"seminar_id": seminar_id, "was_manual": existing.manual_override},
        )
        return await self.get(seminar_id)

    async def ingest(
        self,
        draft: SeminarDraft,
        *,
        source: str,
        source_url: str | None = None,
        seminar_id: str | None = None,
    ) -> SeminarRecord:
        """Create a record on behalf of an external ingester (manual_override stays False)."""
        if not source.strip() or source == MANUAL_SOURCE:
            raise ValidationError(["source"], reason="ingestion requires a non-manual source")
        validate_draft(draft)
        if seminar_id is not None and await self._store.get(seminar_id) is not None:
            raise ConflictError(seminar_id)
        coordinate = await self.resolve_coordinates(draft)
        record = self._build_record(
            seminar_id or self._id_factory(),
            draft,
            coordinate,
            source=source,
            source_url=_clean_optional(source_url),
            manual_override=False,
        )
        await self._store.insert(record)
        logger.info("seminar_ingested", extra={"seminar_id": record.id, "source": source})
        return await self.get(record.id)

    async def get(self, seminar_id: str) -> SeminarRecord:
        record = await self._store.get(seminar_id)
        if record is None:
            raise NotFoundError(seminar_id)
        return record

    async def delete(self, seminar_id: str) -> None:
        if not await self._store.delete(seminar_id):
            raise NotFoundError(seminar_id)
        logger.info("seminar_deleted", extra={"seminar_id": seminar_id})

    async def list_seminars(self, filters: FilterState) -> list[SeminarRecord]:
        return await self._store.list_seminars(filters)

    async def countries(self) -> list[CountryOption]:
        return await self._store.countries()

    def _build_record(
        self,
        seminar_id: str,
        draft: SeminarDraft,
        coordinate: Coordinate,
        *,
        source: str,
        source_url: str | None,
        manual_override: bool,
    ) -> SeminarRecord:
        values: dict[str, object] = {"latitude": coordinate.latitude, "longitude": coordinate.longitude}
        for field in dataclass_fields(SeminarDraft):
            if field.name in values:
                continue
            value = getattr(draft, field.name)
            values[field.name] = value if field.name in REQUIRED_FIELDS else _clean_optional(value)
        return SeminarRecord(
            id=seminar_id,
            source=source,
            source_url=source_url,
            last_scraped=self._clock(),
            manual_override=manual_override,
            **values,
        )
