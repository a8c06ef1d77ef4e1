"""Common runtime devkit for service infrastructure concerns."""

from devkit.config import ServiceSettings, load_settings
from devkit.db import (
    AsyncDatabaseManager,
    Base,
    create_all_tables,
    create_async_engine,
    create_schema_if_not_exists,
    create_session_factory,
    is_postgres_dsn,
    is_transient_db_error,
    normalize_dsn,
)
from devkit.observability import configure_logging, configure_otel, configure_probe_access_log_filter
from devkit.timezone import now_utc, now_utc_iso

__all__ = [
    "AsyncDatabaseManager",
    "Base",
    "ServiceSettings",
    "configure_logging",
    "configure_otel",
    "configure_probe_access_log_filter",
    "create_all_tables",
    "create_async_engine",
    "create_schema_if_not_exists",
    "create_session_factory",
    "is_postgres_dsn",
    "is_transient_db_error",
    "load_settings",
    "normalize_dsn",
    "now_utc",
    "now_utc_iso",
]
