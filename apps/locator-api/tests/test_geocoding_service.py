from __future__ import annotations

import pytest

from locator_api.cache import GeocodeCache, InMemoryCacheStore
from locator_api.circuit_breaker import CircuitBreaker
from locator_api.errors import ApiError, GeocodeError, GeocodeErrorKind
from locator_api.schemas.geocoding import ForwardGeocodeResult
from locator_api.services.geocoding_service import GeocodingService, is_upstream_failure


class ScriptedClient:
    def __init__(self, outcomes: list) -> None:
        self._outcomes = outcomes
        self.calls: list[tuple[str, str | None]] = []

    async def forward(self, address: str, region_bias: str | None = None) -> ForwardGeocodeResult:
        self.calls.append((address, region_bias))
        outcome = self._outcomes[min(len(self.calls), len(self._outcomes)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def build_service(client: ScriptedClient) -> GeocodingService:
    return GeocodingService(
        client=client,
        cache=GeocodeCache(store=InMemoryCacheStore(), ttl_seconds=60),
        circuit_breaker=CircuitBreaker(
            name="forward_geocoder",
            failure_threshold=3,
            recovery_timeout_seconds=30,
            is_failure=is_upstream_failure,
        ),
        default_region="ng",
    )


@pytest.mark.asyncio
async def test_forward_result_is_cached_per_address_and_region() -> None:
    client = ScriptedClient([ForwardGeocodeResult(latitude=6.45, longitude=3.39, formatted_address="Marina")])
    service = build_service(client)

    first = await service.forward("12 Marina")
    second = await service.forward("12  MARINA")

    assert first == second
    assert client.calls == [("12 Marina", "ng")]


@pytest.mark.asyncio
async def test_upstream_failures_open_the_circuit() -> None:
    client = ScriptedClient([GeocodeError(GeocodeErrorKind.UPSTREAM_UNAVAILABLE, "Failed to geocode address")])
    service = build_service(client)

    for _ in range(3):
        with pytest.raises(GeocodeError):
            await service.forward("Lagos")
    with pytest.raises(ApiError) as exc_info:
        await service.forward("Lagos")

    assert exc_info.value.status_code == 503
    assert len(client.calls) == 3
    assert service.circuit_status() == "open"


@pytest.mark.asyncio
async def test_no_results_does_not_trip_the_circuit() -> None:
    client = ScriptedClient([GeocodeError(GeocodeErrorKind.NO_RESULTS, "No coordinates found for address")])
    service = build_service(client)

    for _ in range(4):
        with pytest.raises(GeocodeError):
            await service.forward("Atlantis")

    assert service.circuit_status() == "closed"


@pytest.mark.asyncio
async def test_blank_address_is_rejected_before_upstream() -> None:
    client = ScriptedClient([])
    service = build_service(client)

    with pytest.raises(GeocodeError) as exc_info:
        await service.forward("   ")

    assert exc_info.value.kind is GeocodeErrorKind.EMPTY_ADDRESS
    assert client.calls == []


@pytest.mark.asyncio
async def test_address_exists_without_places_client_is_unavailable() -> None:
    service = build_service(ScriptedClient([]))

    with pytest.raises(ApiError) as exc_info:
        await service.address_exists("Ikeja")

    assert exc_info.value.status_code == 503
