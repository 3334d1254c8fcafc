from __future__ import annotations

from devkit.redis import create_redis_client

from locator_api.cache import GeocodeCache, InMemoryCacheStore, RedisCacheStore
from locator_api.circuit_breaker import CircuitBreaker
from locator_api.clients.google_geocoding import GoogleGeocodingClient
from locator_api.clients.mapbox_places import MapboxPlacesClient
from locator_api.clients.reverse_providers import build_reverse_providers
from locator_api.config import LocatorSettings, load_locator_settings
from locator_api.observability import PrometheusUpstreamMetricsCollector
from locator_api.proxy import UpstreamMapProxy
from locator_api.rate_limit import InMemoryRateLimitStore, RedisRateLimitStore, SlidingWindowRateLimiter
from locator_api.services.geocoding_service import GeocodingService, is_upstream_failure
from locator_api.services.location_service import LocationService
from locator_api.services.reverse_geocoder import ReverseGeocoder

_settings = load_locator_settings()
_upstream_metrics = PrometheusUpstreamMetricsCollector()

redis_client = create_redis_client(_settings.REDIS_URL)
if redis_client is not None:
    _rate_limit_store = RedisRateLimitStore(redis_client, window_seconds=60)
    _geocode_cache_store = RedisCacheStore(redis_client)
else:
    _rate_limit_store = InMemoryRateLimitStore()
    _geocode_cache_store = InMemoryCacheStore()

_geocode_cache = GeocodeCache(store=_geocode_cache_store, ttl_seconds=_settings.GEOCODE_CACHE_TTL_SECONDS)
_geocoding_circuit_breaker = CircuitBreaker(
    name="forward_geocoder",
    failure_threshold=3,
    recovery_timeout_seconds=30,
    is_failure=is_upstream_failure,
)
_geocoding_service = GeocodingService(
    client=GoogleGeocodingClient(
        api_key=_settings.GOOGLE_GEOCODING_API_KEY,
        base_url=_settings.GOOGLE_GEOCODING_URL,
        default_region=_settings.GEOCODING_REGION_BIAS,
        timeout_seconds=_settings.GEOCODING_TIMEOUT_SECONDS,
    ),
    cache=_geocode_cache,
    circuit_breaker=_geocoding_circuit_breaker,
    places_client=MapboxPlacesClient(
        access_token=_settings.MAPBOX_ACCESS_TOKEN,
        base_url=_settings.MAPBOX_GEOCODING_URL,
        country=_settings.MAPBOX_COUNTRY,
        timeout_seconds=_settings.GEOCODING_TIMEOUT_SECONDS,
    ),
    default_region=_settings.GEOCODING_REGION_BIAS,
)
_location_service = LocationService(
    geocoding=_geocoding_service,
    default_tolerance_meters=_settings.DEFAULT_MATCH_TOLERANCE_METERS,
)
_reverse_geocoder = ReverseGeocoder(
    providers=build_reverse_providers(_settings),
    concurrent=_settings.REVERSE_GEOCODE_CONCURRENT,
    metrics=_upstream_metrics,
)
_map_proxy = UpstreamMapProxy(
    endpoint=_settings.OSM_MAP_ENDPOINT,
    user_agent=_settings.UPSTREAM_USER_AGENT,
    timeout_seconds=_settings.MAP_UPSTREAM_TIMEOUT_SECONDS,
    metrics=_upstream_metrics,
)
_map_rate_limiter = SlidingWindowRateLimiter(
    _rate_limit_store,
    limit_per_minute=_settings.MAP_RATE_LIMIT_PER_MINUTE,
    window_seconds=60,
)


def get_settings() -> LocatorSettings:
    return _settings


def get_upstream_metrics() -> PrometheusUpstreamMetricsCollector:
    return _upstream_metrics


def get_geocoding_service() -> GeocodingService:
    return _geocoding_service


def get_location_service() -> LocationService:
    return _location_service


def get_reverse_geocoder() -> ReverseGeocoder:
    return _reverse_geocoder


def get_map_proxy() -> UpstreamMapProxy:
    return _map_proxy


def get_map_rate_limiter() -> SlidingWindowRateLimiter:
    return _map_rate_limiter
