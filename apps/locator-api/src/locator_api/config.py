from __future__ import annotations

from devkit.config import ServiceSettings


class LocatorSettings(ServiceSettings):
    SERVICE_NAME: str = "locator-api"

    GOOGLE_GEOCODING_API_KEY: str | None = None
    GOOGLE_GEOCODING_URL: str = "https://maps.googleapis.com/maps/api/geocode/json"
    GEOCODING_REGION_BIAS: str | None = "ng"
    GEOCODING_TIMEOUT_SECONDS: float = 10.0
    GEOCODE_CACHE_TTL_SECONDS: int = 86_400

    MAPBOX_ACCESS_TOKEN: str | None = None
    MAPBOX_GEOCODING_URL: str = "https://api.mapbox.com/geocoding/v5/mapbox.places"
    MAPBOX_COUNTRY: str | None = "NG"

    NOMINATIM_REVERSE_URL: str = "https://nominatim.openstreetmap.org/reverse"
    REVERSE_GEOCODE_PROVIDERS: str = "nominatim,google,mapbox"
    REVERSE_GEOCODE_TIMEOUT_SECONDS: float = 5.0
    REVERSE_GEOCODE_CONCURRENT: bool = True

    OSM_MAP_ENDPOINT: str = "https://api.openstreetmap.org/api/0.6/map"
    MAP_UPSTREAM_TIMEOUT_SECONDS: float = 15.0
    MAP_RATE_LIMIT_PER_MINUTE: int = 60
    UPSTREAM_USER_AGENT: str = "geoloact-app/1.0"

    DEFAULT_MATCH_TOLERANCE_METERS: float = 80.0
    SESSION_REFRESH_INTERVAL_SECONDS: float = 1800.0

    @property
    def reverse_provider_ids(self) -> list[str]:
        return [item.strip().lower() for item in self.REVERSE_GEOCODE_PROVIDERS.split(",") if item.strip()]


def load_locator_settings() -> LocatorSettings:
    return LocatorSettings()
