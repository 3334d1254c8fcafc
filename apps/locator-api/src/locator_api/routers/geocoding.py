from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from locate_engine.models import Coordinate

from locator_api.dependencies import get_geocoding_service, get_reverse_geocoder
from locator_api.errors import ApiError
from locator_api.response import success_response
from locator_api.schemas.geocoding import GeocodeRequest
from locator_api.services.geocoding_service import GeocodingService
from locator_api.services.reverse_geocoder import ReverseGeocoder

router = APIRouter(tags=["geocoding"])


async def _geocode(service: GeocodingService, address: str | None, region: str | None) -> dict[str, Any]:
    if not address:
        raise ApiError("VALIDATION_ERROR", "Missing required field: address is required", 400)
    result = await service.forward(address, region)
    return success_response(
        {
            "coordinates": {"lat": result.latitude, "lon": result.longitude},
            "formattedAddress": result.formatted_address,
            "addressComponents": result.components.model_dump(),
        }
    )


@router.get("/geocode")
async def geocode_get(
    address: str | None = Query(default=None),
    region: str | None = Query(default=None),
    service: GeocodingService = Depends(get_geocoding_service),
) -> dict[str, Any]:
    return await _geocode(service, address, region)


@router.post("/geocode")
async def geocode_post(
    body: GeocodeRequest,
    region: str | None = Query(default=None),
    service: GeocodingService = Depends(get_geocoding_service),
) -> dict[str, Any]:
    return await _geocode(service, body.address, region)


@router.get("/reverse")
async def reverse_geocode(
    lat: float = Query(...),
    lon: float = Query(...),
    providers: str | None = Query(default=None),
    reverse_geocoder: ReverseGeocoder = Depends(get_reverse_geocoder),
) -> dict[str, Any]:
    coordinate = Coordinate(latitude=lat, longitude=lon)
    provider_ids = None
    if providers:
        provider_ids = [item.strip().lower() for item in providers.split(",") if item.strip()]
    aggregated = await reverse_geocoder.reverse(coordinate, provider_ids)
    return success_response(
        {
            "coordinates": coordinate.as_lat_lon(),
            "results": {provider_id: result.to_payload() for provider_id, result in aggregated.items()},
        }
    )


@router.get("/address/exists")
async def address_exists(
    address: str | None = Query(default=None),
    service: GeocodingService = Depends(get_geocoding_service),
) -> dict[str, Any]:
    if not address:
        raise ApiError("VALIDATION_ERROR", "Missing required field: address is required", 400)
    return success_response({"exists": await service.address_exists(address)})
