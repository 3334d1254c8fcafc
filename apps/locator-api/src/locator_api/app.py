from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from locate_engine.errors import ValidationError

from locator_api import dependencies
from locator_api.errors import ApiError, GeocodeError
from locator_api.middleware import ObservabilityMiddleware
from locator_api.observability import (
    CompositeApiMetricsCollector,
    InMemoryApiMetricsCollector,
    PrometheusApiMetricsCollector,
)
from locator_api.response import JSON_MEDIA_TYPE, NO_CACHE_HEADERS, error_response, success_response
from locator_api.routers.geocoding import router as geocoding_router
from locator_api.routers.location_ws import router as location_ws_router
from locator_api.routers.map import router as map_router
from locator_api.routers.matching import router as matching_router
from locator_api.telemetry import configure_telemetry

logger = logging.getLogger(__name__)

MAP_PATHS = ("/map", "/api/0.6/map")


def _error_json(exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.message, exc.extra, envelope=exc.envelope),
        headers=NO_CACHE_HEADERS,
        media_type=JSON_MEDIA_TYPE,
    )


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    yield
    if dependencies.redis_client is not None:
        await dependencies.redis_client.close()


def create_app() -> FastAPI:
    settings = dependencies.get_settings()
    app = FastAPI(title="Locator API", version="0.1.0", lifespan=lifespan)
    configure_telemetry(settings)
    app.state.api_metrics = InMemoryApiMetricsCollector()
    app.state.prom_metrics = PrometheusApiMetricsCollector()
    app.state.composite_metrics = CompositeApiMetricsCollector(
        [app.state.api_metrics, app.state.prom_metrics]
    )
    app.add_middleware(ObservabilityMiddleware, collector=app.state.composite_metrics)
    app.include_router(map_router)
    app.include_router(matching_router)
    app.include_router(geocoding_router)
    app.include_router(location_ws_router)

    @app.get("/healthz")
    async def healthz() -> dict:
        return success_response({"status": "ok"})

    @app.get("/readyz")
    async def readyz() -> dict:
        geocoding = dependencies.get_geocoding_service()
        return success_response(
            {
                "status": "ready",
                "geocoderCircuit": geocoding.circuit_status(),
                "reverseProviders": dependencies.get_reverse_geocoder().provider_ids,
            }
        )

    @app.get("/metrics")
    async def metrics() -> Response:
        payload = app.state.prom_metrics.render() + dependencies.get_upstream_metrics().render()
        return Response(content=payload, media_type="text/plain; version=0.0.4")

    @app.exception_handler(ApiError)
    async def handle_api_error(_: Request, exc: ApiError) -> JSONResponse:
        return _error_json(exc)

    @app.exception_handler(GeocodeError)
    async def handle_geocode_error(_: Request, exc: GeocodeError) -> JSONResponse:
        return _error_json(exc.to_api_error())

    @app.exception_handler(ValidationError)
    async def handle_domain_validation_error(_: Request, exc: ValidationError) -> JSONResponse:
        return _error_json(ApiError("VALIDATION_ERROR", str(exc), 400))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        message = "; ".join(err["msg"] for err in exc.errors())
        return _error_json(ApiError("VALIDATION_ERROR", message, 400))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_request_error", extra={"path": request.url.path}, exc_info=exc)
        return _error_json(
            ApiError(
                "INTERNAL_ERROR",
                "Internal server error",
                500,
                envelope=request.url.path not in MAP_PATHS,
            )
        )

    return app


app = create_app()
