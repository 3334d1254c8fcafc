from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from locate_engine.models import Coordinate, MatchResult

from locator_api.dependencies import get_location_service
from locator_api.errors import ApiError
from locator_api.response import success_response
from locator_api.schemas.matching import MatchRequest
from locator_api.services.location_service import LocationService

router = APIRouter(tags=["match"])


def _payload(result: MatchResult) -> dict[str, Any]:
    return {
        "matched": result.matched,
        "distanceMeters": result.distance_meters,
        "source": result.source.as_lat_lon(),
        "target": result.target.as_lat_lon(),
        "toleranceMeters": result.tolerance_meters,
    }


async def _run_match(service: LocationService, body: MatchRequest) -> dict[str, Any]:
    if body.source_lat is None or body.source_lon is None:
        raise ApiError("VALIDATION_ERROR", "Missing required fields: sourceLat and sourceLon are required", 400)
    source = Coordinate(latitude=body.source_lat, longitude=body.source_lon)

    # A full target coordinate takes precedence over an address.
    if body.target_lat is not None and body.target_lon is not None:
        target = Coordinate(latitude=body.target_lat, longitude=body.target_lon)
        return success_response(_payload(service.match_coordinates(source, target, body.tolerance_meters)))
    if body.address is not None:
        address_match = await service.match_address(source, body.address, body.tolerance_meters)
        payload = _payload(address_match.match)
        payload["formattedAddress"] = address_match.geocoded.formatted_address
        return success_response(payload)
    raise ApiError(
        "VALIDATION_ERROR",
        "Missing target: provide targetLat and targetLon, or address",
        400,
    )


@router.get("/match")
async def match_get(
    source_lat: float | None = Query(default=None, alias="sourceLat"),
    source_lon: float | None = Query(default=None, alias="sourceLon"),
    target_lat: float | None = Query(default=None, alias="targetLat"),
    target_lon: float | None = Query(default=None, alias="targetLon"),
    address: str | None = Query(default=None),
    tolerance_meters: float | None = Query(default=None, alias="toleranceMeters"),
    service: LocationService = Depends(get_location_service),
) -> dict[str, Any]:
    body = MatchRequest(
        source_lat=source_lat,
        source_lon=source_lon,
        target_lat=target_lat,
        target_lon=target_lon,
        address=address,
        tolerance_meters=tolerance_meters,
    )
    return await _run_match(service, body)


@router.post("/match")
async def match_post(
    body: MatchRequest,
    service: LocationService = Depends(get_location_service),
) -> dict[str, Any]:
    return await _run_match(service, body)
