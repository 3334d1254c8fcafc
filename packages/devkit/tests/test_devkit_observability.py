from __future__ import annotations

import logging

from devkit.observability import _HealthAccessLogFilter


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


def test_health_access_log_filter_ignores_health_check_200() -> None:
    health_filter = _HealthAccessLogFilter(ignored_paths=("/healthz", "/readyz"))
    assert health_filter.filter(_access_record("/healthz", 200)) is False
    assert health_filter.filter(_access_record("/readyz/", 200)) is False
    assert health_filter.filter(_access_record("/readyz?full=true", 200)) is False


def test_health_access_log_filter_keeps_map_requests_and_failures() -> None:
    health_filter = _HealthAccessLogFilter(ignored_paths=("/healthz", "/readyz"))
    assert health_filter.filter(_access_record("/healthz", 500)) is True
    assert health_filter.filter(_access_record("/map?bbox=1,2,1.1,2.1", 200)) is True
