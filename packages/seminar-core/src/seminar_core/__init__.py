"""Seminar record resolution and query core."""

from seminar_core.exceptions import (
    ConflictError,
    NotFoundError,
    SeminarError,
    StoreFailureError,
    ValidationError,
)
from seminar_core.filters import (
    SEMINAR_FILTER_RULES,
    FieldRule,
    RuleKind,
    active_rules,
    apply_filters,
    build_conditions,
    fold_text,
    folded_values,
    matches,
)
from seminar_core.geocode import GeocodeResolver, needs_geocoding
from seminar_core.models import (
    MANUAL_SOURCE,
    Coordinate,
    CountryOption,
    FilterState,
    SeminarDraft,
    SeminarLevel,
    SeminarRecord,
)
from seminar_core.resolution import SeminarResolutionPipeline, SeminarStoreLike, validate_draft

__all__ = [
    "MANUAL_SOURCE",
    "SEMINAR_FILTER_RULES",
    "ConflictError",
    "Coordinate",
    "CountryOption",
    "FieldRule",
    "FilterState",
    "GeocodeResolver",
    "NotFoundError",
    "RuleKind",
    "SeminarDraft",
    "SeminarError",
    "SeminarLevel",
    "SeminarRecord",
    "SeminarResolutionPipeline",
    "SeminarStoreLike",
    "StoreFailureError",
    "ValidationError",
    "active_rules",
    "apply_filters",
    "build_conditions",
    "fold_text",
    "folded_values",
    "matches",
    "needs_geocoding",
    "validate_draft",
]
