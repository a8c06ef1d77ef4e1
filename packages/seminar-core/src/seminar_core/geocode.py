from __future__ import annotations

from typing import Protocol

from seminar_core.models import UNRESOLVED_DEGREES, Coordinate


class GeocodeResolver(Protocol):
    async def resolve(self, city: str, country: str) -> Coordinate | None:
        """Return the best candidate for ``city, country`` or None when unresolved."""
        ...


def is_unresolved(value: float | None) -> bool:
    return value is None or value == UNRESOLVED_DEGREES


def needs_geocoding(latitude: float | None, longitude: float | None, city: str, country: str) -> bool:
    # (0, 0) doubles as "not provided"; any non-zero coordinate is trusted as-is.
    if not (is_unresolved(latitude) and is_unresolved(longitude)):
        return False
    return bool(city and city.strip()) and bool(country and country.strip())
