from __future__ import annotations

import time

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask
from locate_engine.bbox import parse_zoom, shrink_bbox, validate_bbox
from locate_engine.errors import ValidationError

from locator_api.dependencies import get_map_proxy, get_map_rate_limiter
from locator_api.errors import ApiError
from locator_api.proxy import UpstreamHttpError, UpstreamMapProxy, UpstreamStream, UpstreamTimeout
from locator_api.rate_limit import SlidingWindowRateLimiter
from locator_api.response import NO_CACHE_HEADERS

router = APIRouter(tags=["map"])


def _resolve_client_key(request: Request) -> str:
    forwarded = request.headers.get("x-client-id")
    if forwarded:
        return forwarded
    if request.client:
        return request.client.host
    return "anonymous"


def _map_error(code: str, message: str, status_code: int, **extra: object) -> ApiError:
    return ApiError(code, message, status_code, extra=dict(extra), envelope=False)


@router.get("/map")
@router.get("/api/0.6/map", include_in_schema=False)
async def fetch_map(
    request: Request,
    bbox: str | None = Query(default=None),
    zoom: str | None = Query(default=None),
    proxy: UpstreamMapProxy = Depends(get_map_proxy),
    rate_limiter: SlidingWindowRateLimiter = Depends(get_map_rate_limiter),
) -> StreamingResponse:
    if not bbox:
        raise _map_error(
            "VALIDATION_ERROR",
            "Missing required query parameter: bbox={min_lon},{min_lat},{max_lon},{max_lat}",
            400,
        )
    try:
        box = validate_bbox(bbox)
        zoom_level = parse_zoom(zoom)
        if zoom_level is not None:
            box = shrink_bbox(box, zoom_level)
    except ValidationError as exc:
        raise _map_error("VALIDATION_ERROR", str(exc), 400) from exc

    decision = await rate_limiter.check(_resolve_client_key(request), now_seconds=time.time())
    if not decision.allowed:
        raise _map_error("RATE_LIMIT_EXCEEDED", "Too many map requests, please retry later", 429)

    outcome = await proxy.fetch_map(box)
    if isinstance(outcome, UpstreamStream):
        return StreamingResponse(
            outcome.body,
            status_code=200,
            background=BackgroundTask(outcome.aclose),
            headers={
                "Content-Type": outcome.content_type,
                "X-RateLimit-Remaining": str(decision.remaining),
                **NO_CACHE_HEADERS,
            },
        )
    if isinstance(outcome, UpstreamHttpError):
        raise _map_error(
            "UPSTREAM_HTTP_ERROR",
            "Upstream OSM error",
            outcome.status,
            status=outcome.status,
            detail=outcome.detail,
        )
    if isinstance(outcome, UpstreamTimeout):
        raise _map_error("UPSTREAM_TIMEOUT", "Upstream request timed out", 504)
    raise _map_error("UPSTREAM_FAILURE", f"Upstream fetch failed: {outcome.message}", 502)
