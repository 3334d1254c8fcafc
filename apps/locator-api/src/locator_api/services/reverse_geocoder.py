from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from time import perf_counter

from locate_engine.errors import ValidationError
from locate_engine.models import Coordinate

from locator_api.clients.reverse_providers import ReverseGeocodeProvider
from locator_api.observability import UpstreamMetricCollector
from locator_api.schemas.geocoding import AggregatedAddress, ProviderResult

logger = logging.getLogger(__name__)


class ReverseGeocoder:
    """Fans a coordinate out to every registered provider and keeps all answers.

    The aggregate never fails: each provider's failure stays in its own slot.
    """

    def __init__(
        self,
        providers: Sequence[ReverseGeocodeProvider],
        concurrent: bool = True,
        metrics: UpstreamMetricCollector | None = None,
    ) -> None:
        self._providers = {provider.provider_id: provider for provider in providers}
        self._concurrent = concurrent
        self._metrics = metrics

    @property
    def provider_ids(self) -> list[str]:
        return list(self._providers)

    def select(self, provider_ids: Sequence[str] | None) -> list[ReverseGeocodeProvider]:
        if provider_ids is None:
            return list(self._providers.values())
        unknown = [provider_id for provider_id in provider_ids if provider_id not in self._providers]
        if unknown:
            raise ValidationError(f"Unknown reverse geocode provider(s): {', '.join(unknown)}")
        # Keep registration order regardless of how the caller listed them.
        wanted = set(provider_ids)
        return [provider for provider_id, provider in self._providers.items() if provider_id in wanted]

    async def reverse(
        self,
        coordinate: Coordinate,
        provider_ids: Sequence[str] | None = None,
    ) -> AggregatedAddress:
        providers = self.select(provider_ids)
        logger.info(
            "reverse_geocode_started",
            extra={"providers": [provider.provider_id for provider in providers], "concurrent": self._concurrent},
        )
        if self._concurrent:
            timed = await asyncio.gather(*(self._timed_query(provider, coordinate) for provider in providers))
        else:
            timed = [await self._timed_query(provider, coordinate) for provider in providers]

        aggregated: AggregatedAddress = {}
        for provider, (outcome, elapsed_ms) in zip(providers, timed):
            result = self._settle(provider, outcome, elapsed_ms)
            aggregated[provider.provider_id] = result
            if self._metrics is not None:
                self._metrics.observe_provider(
                    provider.provider_id,
                    "error" if result.error else "ok",
                    result.latency_ms,
                )
        logger.info(
            "reverse_geocode_completed",
            extra={"failed": [key for key, value in aggregated.items() if value.error]},
        )
        return aggregated

    @staticmethod
    async def _timed_query(
        provider: ReverseGeocodeProvider,
        coordinate: Coordinate,
    ) -> tuple[ProviderResult | Exception, float]:
        started = perf_counter()
        try:
            outcome: ProviderResult | Exception = await provider.query(coordinate)
        except Exception as exc:
            outcome = exc
        return outcome, (perf_counter() - started) * 1000.0

    @staticmethod
    def _settle(
        provider: ReverseGeocodeProvider,
        outcome: ProviderResult | Exception,
        elapsed_ms: float,
    ) -> ProviderResult:
        if isinstance(outcome, ProviderResult):
            return outcome
        logger.error(
            "reverse_provider_crashed",
            extra={"provider": provider.provider_id, "error_type": type(outcome).__name__},
        )
        return ProviderResult(
            provider_id=provider.provider_id,
            error=f"{provider.provider_id} failed: {type(outcome).__name__}",
            latency_ms=elapsed_ms,
        )
