from __future__ import annotations

from dataclasses import dataclass

from locate_engine.matching import match_coordinates
from locate_engine.models import Coordinate, MatchResult

from locator_api.schemas.geocoding import ForwardGeocodeResult
from locator_api.services.geocoding_service import GeocodingService


@dataclass(frozen=True)
class AddressMatch:
    match: MatchResult
    geocoded: ForwardGeocodeResult


class LocationService:
    """Coordinate-vs-coordinate and coordinate-vs-address matching."""

    def __init__(self, geocoding: GeocodingService, default_tolerance_meters: float = 80.0) -> None:
        self._geocoding = geocoding
        self.default_tolerance_meters = default_tolerance_meters

    def match_coordinates(
        self,
        source: Coordinate,
        target: Coordinate,
        tolerance_meters: float | None = None,
    ) -> MatchResult:
        tolerance = self.default_tolerance_meters if tolerance_meters is None else tolerance_meters
        return match_coordinates(source, target, tolerance)

    async def match_address(
        self,
        source: Coordinate,
        address: str,
        tolerance_meters: float | None = None,
    ) -> AddressMatch:
        tolerance = self.default_tolerance_meters if tolerance_meters is None else tolerance_meters
        # Reject a bad tolerance before spending an upstream call on the address.
        match_coordinates(source, source, tolerance)
        geocoded = await self._geocoding.forward(address)
        return AddressMatch(match=match_coordinates(source, geocoded.coordinate, tolerance), geocoded=geocoded)
