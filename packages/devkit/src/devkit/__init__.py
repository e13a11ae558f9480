"""Common runtime devkit for service infrastructure concerns."""

from devkit.config import ServiceSettings, load_settings
from devkit.db import (
    AsyncDatabaseManager,
    Base,
    create_async_engine,
    is_transient_db_error,
    normalize_postgres_dsn,
)
from devkit.observability import (
    build_log_formatter,
    configure_logging,
    configure_otel,
    configure_health_check_access_log_filter,
)
from devkit.timezone import now_platform, now_platform_iso, parse_iso

__all__ = [
    "AsyncDatabaseManager",
    "Base",
    "ServiceSettings",
    "build_log_formatter",
    "configure_logging",
    "configure_otel",
    "configure_health_check_access_log_filter",
    "create_async_engine",
    "is_transient_db_error",
    "load_settings",
    "normalize_postgres_dsn",
    "now_platform",
    "now_platform_iso",
    "parse_iso",
]
