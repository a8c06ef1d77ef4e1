from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from seminar_core.models import SeminarDraft, SeminarLevel

ISO_DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
OPTIONAL_ISO_DATE_PATTERN = r"^(\d{4}-\d{2}-\d{2})?$"
OPTIONAL_LEVEL_PATTERN = r"^(all|beginner|intermediate|advanced)?$"


class SeminarWriteRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str = Field(min_length=1, max_length=255)
    instructor: str = Field(min_length=1, max_length=255)
    instructor_rank: str | None = Field(default=None, max_length=64)
    organization: str | None = Field(default=None, max_length=255)
    style: str | None = Field(default=None, max_length=64)
    start_date: str = Field(pattern=ISO_DATE_PATTERN)
    end_date: str = Field(pattern=ISO_DATE_PATTERN)
    venue: str | None = Field(default=None, max_length=255)
    city: str = Field(min_length=1, max_length=128)
    country: str = Field(min_length=1, max_length=128)
    country_code: str = Field(min_length=1, max_length=8)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    description: str | None = None
    level: SeminarLevel | None = None
    registration_url: str | None = Field(default=None, max_length=500)
    contact_email: str | None = Field(default=None, max_length=255)
    fee: str | None = Field(default=None, max_length=128)

    @field_validator("level", mode="before")
    @classmethod
    def _blank_level_is_absent(cls, value: Any) -> Any:
        return None if value == "" else value

    def to_draft(self) -> SeminarDraft:
        values = self.model_dump(mode="json", include=set(SeminarDraft.__dataclass_fields__))
        return SeminarDraft(**values)


class SeminarIngestRequest(SeminarWriteRequest):
    id: str | None = Field(default=None, min_length=1, max_length=64)
    source: str = Field(min_length=1, max_length=64)
    source_url: str | None = Field(default=None, max_length=500)
