from __future__ import annotations

from collections.abc import Callable
from urllib.parse import quote

import httpx

from locator_api.errors import ApiError


class MapboxPlacesClient:
    """Checks whether Mapbox knows an address at all, optionally within one country."""

    def __init__(
        self,
        access_token: str | None,
        base_url: str = "https://api.mapbox.com/geocoding/v5/mapbox.places",
        country: str | None = None,
        timeout_seconds: float = 5.0,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        self._access_token = access_token
        self._base_url = base_url.rstrip("/")
        self._country = country
        self._timeout_seconds = timeout_seconds
        self._client_factory = client_factory

    async def address_exists(self, address: str) -> bool:
        query = (address or "").strip()
        if not query:
            raise ApiError("VALIDATION_ERROR", "Address is empty", 400)
        if not self._access_token:
            raise ApiError("UPSTREAM_UNAVAILABLE", "Address lookup provider is not configured", 503)

        params: dict[str, str | int] = {"access_token": self._access_token, "limit": 1}
        if self._country:
            params["country"] = self._country
        url = f"{self._base_url}/{quote(query, safe='')}.json"
        try:
            factory = self._client_factory or (lambda: httpx.AsyncClient(timeout=self._timeout_seconds))
            async with factory() as client:
                response = await client.get(url, params=params)
                response.raise_for_status()
                payload = response.json()
        except httpx.TimeoutException as exc:
            raise ApiError("UPSTREAM_TIMEOUT", "Upstream timeout", 504) from exc
        except httpx.HTTPStatusError as exc:
            raise ApiError("UPSTREAM_HTTP_ERROR", "Address lookup provider returned an error", 502) from exc
        except httpx.HTTPError as exc:
            raise ApiError("UPSTREAM_FAILURE", "Address lookup request failed", 502) from exc
        except ValueError as exc:
            raise ApiError("UPSTREAM_FAILURE", "Invalid upstream response", 502) from exc
        features = payload.get("features") if isinstance(payload, dict) else None
        return bool(features)
