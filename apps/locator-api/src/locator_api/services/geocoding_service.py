from __future__ import annotations

import logging
import time

from locator_api.cache import GeocodeCache
from locator_api.circuit_breaker import CircuitBreaker, CircuitOpenError
from locator_api.clients.google_geocoding import GoogleGeocodingClient
from locator_api.clients.mapbox_places import MapboxPlacesClient
from locator_api.errors import ApiError, GeocodeError, GeocodeErrorKind
from locator_api.schemas.geocoding import ForwardGeocodeResult

logger = logging.getLogger(__name__)


def is_upstream_failure(exc: BaseException) -> bool:
    return isinstance(exc, GeocodeError) and exc.kind in (
        GeocodeErrorKind.UPSTREAM_UNAVAILABLE,
        GeocodeErrorKind.MALFORMED_COORDINATES,
    )


class GeocodingService:
    def __init__(
        self,
        client: GoogleGeocodingClient,
        cache: GeocodeCache,
        circuit_breaker: CircuitBreaker,
        places_client: MapboxPlacesClient | None = None,
        default_region: str | None = None,
    ) -> None:
        self._client = client
        self._cache = cache
        self._circuit_breaker = circuit_breaker
        self._places_client = places_client
        self._default_region = default_region

    async def forward(self, address: str, region_bias: str | None = None) -> ForwardGeocodeResult:
        query = (address or "").strip()
        if not query:
            raise GeocodeError(GeocodeErrorKind.EMPTY_ADDRESS, "Address is empty")
        region = region_bias or self._default_region
        cached = await self._cache.get_forward(query, region)
        if cached is not None:
            logger.debug("forward_geocode_cache_hit", extra={"region": region})
            return ForwardGeocodeResult.model_validate(cached)
        try:
            result = await self._circuit_breaker.call(
                lambda: self._client.forward(query, region),
                now_seconds=time.time(),
            )
        except CircuitOpenError as exc:
            raise ApiError("UPSTREAM_UNAVAILABLE", "Geocoding provider unavailable, please retry later", 503) from exc
        await self._cache.set_forward(query, region, result.model_dump())
        return result

    async def address_exists(self, address: str) -> bool:
        if self._places_client is None:
            raise ApiError("UPSTREAM_UNAVAILABLE", "Address lookup provider is not configured", 503)
        return await self._places_client.address_exists(address)

    def circuit_status(self) -> str:
        return self._circuit_breaker.status(time.time())
