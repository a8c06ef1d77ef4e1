from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from devkit.config import ServiceSettings, load_settings
from devkit.observability import configure_logging, configure_otel, configure_probe_access_log_filter
from seminar_core.exceptions import SeminarError, StoreFailureError
from seminar_core.geocode import GeocodeResolver
from seminar_core.models import CountryOption, FilterState, SeminarRecord
from seminar_core.resolution import SeminarResolutionPipeline

from seminar_service.clients.nominatim_client import NominatimGeocoder
from seminar_service.errors import ApiError, api_error_from
from seminar_service.middleware import ObservabilityMiddleware
from seminar_service.observability import PrometheusRequestMetrics
from seminar_service.response import error_response, success_response
from seminar_service.schemas import (
    OPTIONAL_ISO_DATE_PATTERN,
    OPTIONAL_LEVEL_PATTERN,
    SeminarIngestRequest,
    SeminarWriteRequest,
)
from seminar_service.store import SeminarStore

logger = logging.getLogger(__name__)


def seminar_payload(item: SeminarRecord) -> dict[str, object]:
    return {
        "id": item.id,
        "title": item.title,
        "instructor": item.instructor,
        "instructorRank": item.instructor_rank,
        "organization": item.organization,
        "style": item.style,
        "startDate": item.start_date,
        "endDate": item.end_date,
        "venue": item.venue,
        "city": item.city,
        "country": item.country,
        "countryCode": item.country_code,
        "latitude": item.latitude,
        "longitude": item.longitude,
        "description": item.description,
        "level": item.level,
        "registrationUrl": item.registration_url,
        "contactEmail": item.contact_email,
        "fee": item.fee,
        "source": item.source,
        "sourceUrl": item.source_url,
        "lastScraped": item.last_scraped,
        "manualOverride": item.manual_override,
    }


def country_payload(item: CountryOption) -> dict[str, str]:
    return {"country": item.country, "countryCode": item.country_code}


def build_geocoder(settings: ServiceSettings) -> GeocodeResolver | None:
    if not settings.GEOCODER_ENABLED:
        return None
    return NominatimGeocoder(
        base_url=settings.GEOCODER_BASE_URL,
        user_agent=settings.GEOCODER_USER_AGENT,
        timeout_seconds=settings.GEOCODER_TIMEOUT_SECONDS,
    )


def create_app(
    *,
    settings: ServiceSettings | None = None,
    store: SeminarStore | None = None,
    geocoder: GeocodeResolver | None = None,
) -> FastAPI:
    settings = settings or load_settings("seminar-service")
    configure_logging(settings.LOG_LEVEL)
    configure_otel(service_name=settings.SERVICE_NAME)
    configure_probe_access_log_filter()

    store = store or SeminarStore(settings.DATABASE_URL)
    pipeline = SeminarResolutionPipeline(store, geocoder or build_geocoder(settings))

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info("seminar_service_started", extra={"store_backend": store.backend})
        yield
        await store.close()

    app = FastAPI(title="Seminar Service", version="0.1.0", lifespan=lifespan)
    app.state.pipeline = pipeline
    app.state.metrics = PrometheusRequestMetrics()
    app.add_middleware(ObservabilityMiddleware, metrics=app.state.metrics)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["x-trace-id"],
    )

    @app.get("/healthz")
    async def healthz() -> dict[str, object]:
        return success_response({"status": "ok"}, meta={})

    @app.get("/readyz")
    async def readyz() -> dict[str, object]:
        return success_response({"status": "ready", "store_backend": store.backend}, meta={})

    @app.get("/metrics")
    async def metrics() -> Response:
        return Response(content=app.state.metrics.render(), media_type="text/plain; version=0.0.4")

    @app.get("/v1/seminars")
    async def list_seminars(
        country: str = Query(default="", max_length=8),
        instructor: str = Query(default="", max_length=255),
        organization: str = Query(default="", max_length=255),
        level: str = Query(default="", pattern=OPTIONAL_LEVEL_PATTERN),
        start_date: str = Query(default="", alias="startDate", pattern=OPTIONAL_ISO_DATE_PATTERN),
        end_date: str = Query(default="", alias="endDate", pattern=OPTIONAL_ISO_DATE_PATTERN),
    ) -> dict[str, object]:
        filters = FilterState(
            country=country,
            instructor=instructor,
            organization=organization,
            level=level,
            start_date=start_date,
            end_date=end_date,
        )
        items = await pipeline.list_seminars(filters)
        return success_response([seminar_payload(item) for item in items], meta={"count": len(items)})

    @app.get("/v1/seminars/countries")
    async def list_countries() -> dict[str, object]:
        items = await pipeline.countries()
        return success_response([country_payload(item) for item in items], meta={"count": len(items)})

    @app.get("/v1/seminars/{seminar_id}")
    async def get_seminar(seminar_id: str) -> dict[str, object]:
        item = await pipeline.get(seminar_id)
        return success_response(seminar_payload(item), meta={})

    @app.post("/v1/seminars", status_code=201)
    async def create_seminar(body: SeminarWriteRequest) -> dict[str, object]:
        item = await pipeline.create(body.to_draft())
        return success_response(seminar_payload(item), meta={})

    @app.put("/v1/seminars/{seminar_id}")
    async def update_seminar(seminar_id: str, body: SeminarWriteRequest) -> dict[str, object]:
        item = await pipeline.update(seminar_id, body.to_draft())
        return success_response(seminar_payload(item), meta={})

    @app.delete("/v1/seminars/{seminar_id}")
    async def delete_seminar(seminar_id: str) -> dict[str, object]:
        await pipeline.delete(seminar_id)
        return success_response({"deleted": True}, meta={})

    @app.post("/internal/seminars/ingest", status_code=201)
    async def ingest_seminar(body: SeminarIngestRequest) -> dict[str, object]:
        item = await pipeline.ingest(
            body.to_draft(),
            source=body.source,
            source_url=body.source_url,
            seminar_id=body.id,
        )
        return success_response(seminar_payload(item), meta={})

    @app.exception_handler(ApiError)
    async def handle_api_error(_: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=error_response(exc.code, exc.message))

    @app.exception_handler(SeminarError)
    async def handle_seminar_error(request: Request, exc: SeminarError) -> JSONResponse:
        if isinstance(exc, StoreFailureError):
            logger.error("seminar_request_failed", extra={"path": request.url.path, "error": str(exc)})
        return await handle_api_error(request, api_error_from(exc))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        message = "; ".join(err["msg"] for err in exc.errors())
        return JSONResponse(
            status_code=422,
            content=error_response("VALIDATION_ERROR", message),
        )

    return app


app = create_app()
