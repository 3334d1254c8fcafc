from __future__ import annotations

import logging
import math
from collections.abc import Callable
from typing import Any

import httpx

from locator_api.errors import GeocodeError, GeocodeErrorKind
from locator_api.schemas.geocoding import AddressComponents, ForwardGeocodeResult

logger = logging.getLogger(__name__)

_COMPONENT_TYPES = (
    "street_number",
    "route",
    "locality",
    "administrative_area_level_1",
    "postal_code",
    "country",
)


def _to_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def extract_address_components(result: dict[str, Any]) -> AddressComponents:
    values: dict[str, str] = {}
    for component in result.get("address_components") or []:
        if not isinstance(component, dict):
            continue
        types = component.get("types") or []
        # A component fills its first matching slot; later duplicates win.
        for component_type in _COMPONENT_TYPES:
            if component_type in types:
                values[component_type] = str(component.get("long_name") or "")
                break
    return AddressComponents(**values)


class GoogleGeocodingClient:
    """Forward geocoding against the Google Geocoding JSON API."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://maps.googleapis.com/maps/api/geocode/json",
        default_region: str | None = None,
        timeout_seconds: float = 10.0,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._default_region = default_region
        self._timeout_seconds = timeout_seconds
        self._client_factory = client_factory

    async def forward(self, address: str, region_bias: str | None = None) -> ForwardGeocodeResult:
        query = (address or "").strip()
        if not query:
            raise GeocodeError(GeocodeErrorKind.EMPTY_ADDRESS, "Address is empty")
        if not self._api_key:
            raise GeocodeError(GeocodeErrorKind.UPSTREAM_UNAVAILABLE, "Geocoding provider is not configured")

        params: dict[str, Any] = {"address": query, "key": self._api_key}
        region = region_bias or self._default_region
        if region:
            params["region"] = region

        try:
            factory = self._client_factory or (lambda: httpx.AsyncClient(timeout=self._timeout_seconds))
            async with factory() as client:
                response = await client.get(self._base_url, params=params)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as exc:
            logger.warning("forward_geocode_upstream_failed", extra={"error": type(exc).__name__})
            raise GeocodeError(GeocodeErrorKind.UPSTREAM_UNAVAILABLE, "Failed to geocode address") from exc
        except ValueError as exc:
            raise GeocodeError(GeocodeErrorKind.UPSTREAM_UNAVAILABLE, "Failed to geocode address") from exc

        if not isinstance(payload, dict):
            raise GeocodeError(GeocodeErrorKind.UPSTREAM_UNAVAILABLE, "Failed to geocode address")
        status = payload.get("status", "OK")
        if status not in ("OK", "ZERO_RESULTS"):
            logger.warning("forward_geocode_rejected", extra={"status": status})
            raise GeocodeError(GeocodeErrorKind.UPSTREAM_UNAVAILABLE, "Failed to geocode address")

        results = payload.get("results")
        if not results or not isinstance(results, list):
            raise GeocodeError(GeocodeErrorKind.NO_RESULTS, "No coordinates found for address")

        first = results[0]
        if not isinstance(first, dict):
            raise GeocodeError(GeocodeErrorKind.MALFORMED_COORDINATES, "Invalid coordinates for address")
        geometry = first.get("geometry")
        location = geometry.get("location") if isinstance(geometry, dict) else None
        if not isinstance(location, dict):
            raise GeocodeError(GeocodeErrorKind.MALFORMED_COORDINATES, "Invalid coordinates for address")
        lat = _to_float(location.get("lat"))
        lon = _to_float(location.get("lng"))
        if lat is None or lon is None or not (-90 <= lat <= 90 and -180 <= lon <= 180):
            raise GeocodeError(GeocodeErrorKind.MALFORMED_COORDINATES, "Invalid coordinates for address")

        return ForwardGeocodeResult(
            latitude=lat,
            longitude=lon,
            formatted_address=str(first.get("formatted_address") or ""),
            components=extract_address_components(first),
        )
