from __future__ import annotations

import json
import logging

from devkit.observability import _HealthCheckAccessLogFilter, build_log_formatter


def _access_record(path: str, status: int) -> logging.LogRecord:
    return logging.LogRecord(
        name="uvicorn.access",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg='%s - "%s %s HTTP/%s" %d',
        args=("127.0.0.1:12345", "GET", path, "1.1", status),
        exc_info=None,
    )


def test_access_log_filter_ignores_healthy_checks() -> None:
    access_filter = _HealthCheckAccessLogFilter(ignored_paths=("/healthz", "/readyz"))
    assert access_filter.filter(_access_record("/healthz", 200)) is False
    assert access_filter.filter(_access_record("/readyz/", 200)) is False
    assert access_filter.filter(_access_record("/readyz?full=true", 200)) is False


def test_access_log_filter_keeps_other_paths_and_failures() -> None:
    access_filter = _HealthCheckAccessLogFilter(ignored_paths=("/healthz", "/readyz"))
    assert access_filter.filter(_access_record("/healthz", 503)) is True
    assert access_filter.filter(_access_record("/v1/emergencies", 200)) is True


def _event_record(level: int, msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="presence.heartbeat",
        level=level,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_log_formatter_renders_extra_fields_as_json() -> None:
    record = _event_record(logging.WARNING, "heartbeat_write_failed", component="presence", provider_id="p-1")

    payload = json.loads(build_log_formatter().format(record))

    assert payload["event"] == "heartbeat_write_failed"
    assert payload["level"] == "warning"
    assert payload["logger"] == "presence.heartbeat"
    assert payload["component"] == "presence"
    assert payload["provider_id"] == "p-1"
    assert "timestamp" in payload


def test_console_log_formatter_keeps_event_name() -> None:
    record = _event_record(logging.INFO, "heartbeat_started", component="presence")

    rendered = build_log_formatter(json_logs=False).format(record)

    assert "heartbeat_started" in rendered
    assert "component" in rendered
