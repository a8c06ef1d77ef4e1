from __future__ import annotations

import logging
import math
from collections.abc import Callable
from typing import Any

import httpx

from seminar_core.models import Coordinate

logger = logging.getLogger(__name__)


class NominatimGeocoder:
    """Resolves ``city, country`` through an OpenStreetMap Nominatim search endpoint.

    Every failure is reported as None; callers keep their coordinate sentinel.
    """

    def __init__(
        self,
        base_url: str = "https://nominatim.openstreetmap.org",
        user_agent: str = "SeminarTracker/1.0",
        timeout_seconds: float = 5.0,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._user_agent = user_agent
        self._timeout_seconds = timeout_seconds
        self._client_factory = client_factory

    async def resolve(self, city: str, country: str) -> Coordinate | None:
        params = {"q": f"{city}, {country}", "format": "json", "limit": 1}
        log_extra = {"component": "geocoder", "city": city, "country": country}

        try:
            factory = self._client_factory or (lambda: httpx.AsyncClient(timeout=self._timeout_seconds))
            async with factory() as client:
                response = await client.get(
                    f"{self._base_url}/search",
                    params=params,
                    headers={"User-Agent": self._user_agent},
                )
                response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException:
            logger.warning("geocode_timeout", extra=log_extra)
            return None
        except httpx.HTTPStatusError as exc:
            logger.warning("geocode_http_error", extra={**log_extra, "status_code": exc.response.status_code})
            return None
        except httpx.HTTPError as exc:
            logger.warning("geocode_request_failed", extra={**log_extra, "error": str(exc)})
            return None
        except ValueError:
            logger.warning("geocode_malformed_payload", extra=log_extra)
            return None

        coordinate = parse_first_candidate(payload)
        if coordinate is None:
            logger.info("geocode_no_candidate", extra=log_extra)
        return coordinate


def parse_first_candidate(payload: Any) -> Coordinate | None:
    if not isinstance(payload, list) or not payload:
        return None
    first = payload[0]
    if not isinstance(first, dict):
        return None
    try:
        latitude = float(first["lat"])
        longitude = float(first["lon"])
    except (KeyError, TypeError, ValueError):
        return None
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        return None
    if abs(latitude) > 90 or abs(longitude) > 180:
        return None
    return Coordinate(latitude=latitude, longitude=longitude)
