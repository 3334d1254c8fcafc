from __future__ import annotations

from locator_api.config import LocatorSettings


def configure_telemetry(settings: LocatorSettings) -> None:
    from devkit.observability import configure_logging, configure_otel, configure_health_access_log_filter

    configure_logging(settings.LOG_LEVEL)
    configure_otel(service_name=settings.SERVICE_NAME)
    configure_health_access_log_filter()
