"""Relay of OpenStreetMap ``/map`` downloads for a validated bounding box.

Success bodies are streamed chunk by chunk. The upstream connection is released
when the body iterator is exhausted, or by ``UpstreamStream.aclose`` when the
body is never read.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from typing import Union

import httpx
from locate_engine.models import BoundingBox

from locator_api.observability import UpstreamMetricCollector

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/xml; charset=utf-8"
ACCEPT_XML = "application/xml, text/xml;q=0.9, */*;q=0.1"
MAX_DETAIL_CHARS = 500


@dataclass
class UpstreamStream:
    content_type: str
    body: AsyncIterator[bytes]
    response: httpx.Response | None = None
    client: httpx.AsyncClient | None = None

    async def aclose(self) -> None:
        """Release the upstream connection whether or not ``body`` was consumed."""
        if self.response is not None:
            await self.response.aclose()
        if self.client is not None:
            await self.client.aclose()


@dataclass(frozen=True)
class UpstreamHttpError:
    status: int
    detail: str


@dataclass(frozen=True)
class UpstreamTimeout:
    timeout_seconds: float


@dataclass(frozen=True)
class UpstreamNetworkError:
    message: str


UpstreamFetchOutcome = Union[UpstreamStream, UpstreamHttpError, UpstreamTimeout, UpstreamNetworkError]


class UpstreamMapProxy:
    def __init__(
        self,
        endpoint: str = "https://api.openstreetmap.org/api/0.6/map",
        user_agent: str = "geoloact-app/1.0",
        timeout_seconds: float = 15.0,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
        metrics: UpstreamMetricCollector | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._user_agent = user_agent
        self._timeout_seconds = timeout_seconds
        self._client_factory = client_factory
        self._metrics = metrics

    def build_url(self, bbox: BoundingBox) -> str:
        # Commas stay literal; the upstream expects the raw bbox list.
        return f"{self._endpoint}?bbox={bbox.to_query()}"

    async def fetch_map(self, bbox: BoundingBox) -> UpstreamFetchOutcome:
        outcome = await self._fetch(bbox)
        if self._metrics is not None:
            self._metrics.observe_map_outcome(type(outcome).__name__)
        return outcome

    async def _fetch(self, bbox: BoundingBox) -> UpstreamFetchOutcome:
        factory = self._client_factory or (
            lambda: httpx.AsyncClient(timeout=self._timeout_seconds, follow_redirects=True)
        )
        client = factory()
        request = client.build_request(
            "GET",
            self.build_url(bbox),
            headers={"Accept": ACCEPT_XML, "User-Agent": self._user_agent},
        )
        try:
            # The deadline covers everything up to the response headers; the
            # pending request is cancelled when it expires.
            response = await asyncio.wait_for(client.send(request, stream=True), timeout=self._timeout_seconds)
        except (TimeoutError, httpx.TimeoutException):
            await client.aclose()
            logger.warning("map_upstream_timeout", extra={"bbox": bbox.to_query(), "timeout": self._timeout_seconds})
            return UpstreamTimeout(timeout_seconds=self._timeout_seconds)
        except httpx.HTTPError as exc:
            await client.aclose()
            logger.warning("map_upstream_failed", extra={"bbox": bbox.to_query(), "error": str(exc)})
            return UpstreamNetworkError(message=str(exc) or type(exc).__name__)
        except BaseException:
            await client.aclose()
            raise

        if not response.is_success:
            try:
                await response.aread()
                detail = response.text[:MAX_DETAIL_CHARS]
            except httpx.HTTPError:
                detail = ""
            finally:
                await response.aclose()
                await client.aclose()
            logger.warning(
                "map_upstream_error_status",
                extra={"bbox": bbox.to_query(), "status": response.status_code},
            )
            return UpstreamHttpError(status=response.status_code, detail=detail)

        content_type = response.headers.get("content-type") or DEFAULT_CONTENT_TYPE
        return UpstreamStream(
            content_type=content_type,
            body=self._relay(client, response),
            response=response,
            client=client,
        )

    @staticmethod
    async def _relay(client: httpx.AsyncClient, response: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        finally:
            await response.aclose()
            await client.aclose()
