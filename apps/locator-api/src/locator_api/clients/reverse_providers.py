"""Reverse-geocode provider adapters.

Every adapter turns its own failures into a :class:`ProviderResult` with
``error`` set, so one provider can never break the aggregate lookup.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from time import perf_counter
from typing import Any

import httpx
from locate_engine.models import Coordinate

from locator_api.config import LocatorSettings
from locator_api.schemas.geocoding import ProviderResult

logger = logging.getLogger(__name__)


class ProviderPayloadError(Exception):
    """Raised when a provider answers 2xx with an unusable body."""


class ReverseGeocodeProvider(ABC):
    provider_id: str
    not_found_label: str

    def __init__(
        self,
        timeout_seconds: float = 5.0,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self._client_factory = client_factory

    async def query(self, coordinate: Coordinate) -> ProviderResult:
        started = perf_counter()
        label: str | None = None
        error: str | None = None
        try:
            payload = await asyncio.wait_for(self._fetch(coordinate), timeout=self.timeout_seconds)
            label = self.extract_label(payload) or self.not_found_label
        except (TimeoutError, httpx.TimeoutException):
            error = f"{self.provider_id} timed out after {self.timeout_seconds:g}s"
        except httpx.HTTPStatusError as exc:
            error = f"{self.provider_id} returned HTTP {exc.response.status_code}"
        except httpx.HTTPError as exc:
            error = f"{self.provider_id} request failed: {type(exc).__name__}"
        except ProviderPayloadError as exc:
            error = f"{self.provider_id} {exc}"
        except ValueError:
            error = f"{self.provider_id} returned an invalid JSON payload"
        latency_ms = (perf_counter() - started) * 1000.0
        if error:
            logger.warning(
                "reverse_provider_failed",
                extra={"provider": self.provider_id, "error": error, "latency_ms": latency_ms},
            )
        return ProviderResult(provider_id=self.provider_id, label=label, error=error, latency_ms=latency_ms)

    async def _fetch(self, coordinate: Coordinate) -> dict[str, Any]:
        self.check_configured()
        factory = self._client_factory or (lambda: httpx.AsyncClient(timeout=self.timeout_seconds))
        async with factory() as client:
            response = await client.get(
                self.endpoint(coordinate),
                params=self.build_params(coordinate),
                headers=self.build_headers(),
            )
            response.raise_for_status()
            payload = response.json()
        if not isinstance(payload, dict) or not payload:
            raise ProviderPayloadError("returned an empty payload")
        return payload

    def check_configured(self) -> None:
        return None

    def build_headers(self) -> dict[str, str]:
        return {"Accept": "application/json"}

    @abstractmethod
    def endpoint(self, coordinate: Coordinate) -> str:
        raise NotImplementedError

    @abstractmethod
    def build_params(self, coordinate: Coordinate) -> dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def extract_label(self, payload: dict[str, Any]) -> str | None:
        raise NotImplementedError


class NominatimReverseProvider(ReverseGeocodeProvider):
    provider_id = "nominatim"
    not_found_label = "Address not found (Nominatim)"

    def __init__(
        self,
        base_url: str = "https://nominatim.openstreetmap.org/reverse",
        user_agent: str = "geoloact-app/1.0",
        timeout_seconds: float = 5.0,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        super().__init__(timeout_seconds=timeout_seconds, client_factory=client_factory)
        self._base_url = base_url
        self._user_agent = user_agent

    def endpoint(self, coordinate: Coordinate) -> str:
        return self._base_url

    def build_params(self, coordinate: Coordinate) -> dict[str, Any]:
        return {"format": "jsonv2", "lat": coordinate.latitude, "lon": coordinate.longitude}

    def build_headers(self) -> dict[str, str]:
        # Nominatim's usage policy rejects anonymous clients.
        return {"Accept": "application/json", "User-Agent": self._user_agent}

    def extract_label(self, payload: dict[str, Any]) -> str | None:
        if payload.get("error"):
            return None
        return payload.get("display_name") or None


class GoogleReverseProvider(ReverseGeocodeProvider):
    provider_id = "google"
    not_found_label = "Address not found (Google)"

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://maps.googleapis.com/maps/api/geocode/json",
        timeout_seconds: float = 5.0,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        super().__init__(timeout_seconds=timeout_seconds, client_factory=client_factory)
        self._api_key = api_key
        self._base_url = base_url

    def check_configured(self) -> None:
        if not self._api_key:
            raise ProviderPayloadError("API key is not configured")

    def endpoint(self, coordinate: Coordinate) -> str:
        return self._base_url

    def build_params(self, coordinate: Coordinate) -> dict[str, Any]:
        return {"latlng": f"{coordinate.latitude},{coordinate.longitude}", "key": self._api_key}

    def extract_label(self, payload: dict[str, Any]) -> str | None:
        status = payload.get("status", "OK")
        if status not in ("OK", "ZERO_RESULTS"):
            detail = payload.get("error_message") or status
            raise ProviderPayloadError(f"rejected the request: {detail}")
        results = payload.get("results") or []
        if not results:
            return None
        return results[0].get("formatted_address") or None


class MapboxReverseProvider(ReverseGeocodeProvider):
    provider_id = "mapbox"
    not_found_label = "Address not found (Mapbox)"

    def __init__(
        self,
        access_token: str | None,
        base_url: str = "https://api.mapbox.com/geocoding/v5/mapbox.places",
        timeout_seconds: float = 5.0,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        super().__init__(timeout_seconds=timeout_seconds, client_factory=client_factory)
        self._access_token = access_token
        self._base_url = base_url.rstrip("/")

    def check_configured(self) -> None:
        if not self._access_token:
            raise ProviderPayloadError("access token is not configured")

    def endpoint(self, coordinate: Coordinate) -> str:
        return f"{self._base_url}/{coordinate.longitude},{coordinate.latitude}.json"

    def build_params(self, coordinate: Coordinate) -> dict[str, Any]:
        return {"access_token": self._access_token, "limit": 1}

    def extract_label(self, payload: dict[str, Any]) -> str | None:
        features = payload.get("features") or []
        if not features:
            return None
        return features[0].get("place_name") or None


ProviderBuilder = Callable[[LocatorSettings], ReverseGeocodeProvider]

_PROVIDERS: dict[str, ProviderBuilder] = {
    "nominatim": lambda settings: NominatimReverseProvider(
        base_url=settings.NOMINATIM_REVERSE_URL,
        user_agent=settings.UPSTREAM_USER_AGENT,
        timeout_seconds=settings.REVERSE_GEOCODE_TIMEOUT_SECONDS,
    ),
    "google": lambda settings: GoogleReverseProvider(
        api_key=settings.GOOGLE_GEOCODING_API_KEY,
        base_url=settings.GOOGLE_GEOCODING_URL,
        timeout_seconds=settings.REVERSE_GEOCODE_TIMEOUT_SECONDS,
    ),
    "mapbox": lambda settings: MapboxReverseProvider(
        access_token=settings.MAPBOX_ACCESS_TOKEN,
        base_url=settings.MAPBOX_GEOCODING_URL,
        timeout_seconds=settings.REVERSE_GEOCODE_TIMEOUT_SECONDS,
    ),
}


def build_reverse_providers(settings: LocatorSettings) -> list[ReverseGeocodeProvider]:
    providers: list[ReverseGeocodeProvider] = []
    for provider_id in settings.reverse_provider_ids:
        builder = _PROVIDERS.get(provider_id)
        if builder is None:
            supported = ", ".join(sorted(_PROVIDERS))
            raise ValueError(f"unsupported reverse geocode provider '{provider_id}', supported: {supported}")
        providers.append(builder(settings))
    return providers
