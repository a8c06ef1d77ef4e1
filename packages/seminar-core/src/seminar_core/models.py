from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

MANUAL_SOURCE = "manual"
UNRESOLVED_DEGREES = 0.0


class SeminarLevel(str, Enum):
    ALL = "all"
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float


@dataclass
class SeminarDraft:
    """Candidate write body: every record field the caller may set."""

    title: str
    instructor: str
    start_date: str
    end_date: str
    city: str
    country: str
    country_code: str
    instructor_rank: str | None = None
    organization: str | None = None
    style: str | None = None
    venue: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    description: str | None = None
    level: str | None = None
    registration_url: str | None = None
    contact_email: str | None = None
    fee: str | None = None


@dataclass
class SeminarRecord:
    id: str
    title: str
    instructor: str
    start_date: str
    end_date: str
    city: str
    country: str
    country_code: str
    latitude: float
    longitude: float
    source: str
    last_scraped: str
    manual_override: bool
    instructor_rank: str | None = None
    organization: str | None = None
    style: str | None = None
    venue: str | None = None
    description: str | None = None
    level: str | None = None
    registration_url: str | None = None
    contact_email: str | None = None
    fee: str | None = None
    source_url: str | None = None


@dataclass(frozen=True)
class FilterState:
    """Client-held filter; an empty field is not applied."""

    country: str = ""
    instructor: str = ""
    organization: str = ""
    level: str = ""
    start_date: str = ""
    end_date: str = ""


@dataclass(frozen=True)
class CountryOption:
    country: str
    country_code: str
